import os
from joblib import delayed, Parallel
from rich.progress import Progress, TextColumn, BarColumn, TimeRemainingColumn, TimeElapsedColumn

from chrmod import ansi


def get_n_jobs(n_jobs):

    if n_jobs is None or (n_jobs < 0 and os.cpu_count() + 1 + n_jobs <= 0): return 1
    elif n_jobs > os.cpu_count(): return os.cpu_count()
    elif n_jobs < 0: return os.cpu_count() + 1 + n_jobs
    else: return n_jobs


def parallelize(
    callback,
    collection,
    n_jobs = None,
    backend: str = "loky",
    description: str = "",
    show_progress_bar: bool = True,
    **kwargs
):
    """
    Apply a function to each element of a collection in parallel, keeping the
    order of the collection in the returned list.

    Parameters
    ----------

    callback
        Function to parallelize. Called as ``callback(item, **kwargs)``.

    collection
        Sequence of items.

    n_jobs
        Number of parallel jobs. Negative values count back from the number of cpus.

    backend
        Which backend to use for multiprocessing. See :class:`joblib.Parallel` for valid options.

    description
        Text shown beside the progress bar.

    show_progress_bar
        Whether to show a progress bar.
    """

    n_jobs = get_n_jobs(n_jobs)
    collection = list(collection)
    results = Parallel(n_jobs = n_jobs, backend = backend, return_as = 'generator')(
        delayed(callback)(item, **kwargs) for item in collection
    )

    if not show_progress_bar or ansi.SILENT: return list(results)

    collected = []
    with Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>4.1f}%"),
        TimeRemainingColumn(),
        TimeElapsedColumn()
    ) as pbar:
        task = pbar.add_task(description = description, total = len(collection))
        for res in results:
            collected.append(res)
            pbar.advance(task, advance = 1)

    return collected
