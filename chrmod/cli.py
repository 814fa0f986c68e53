'''
Command line entry of the module analysis.

    chrmod run atac.h5ad deviations.h5ad modules/ --cells cells.txt
'''

import click

from chrmod import ansi


@click.group()
def cli():
    ''' Peak modules of transcription factor motif activity in single cell ATAC-seq. '''
    pass


@cli.command()
@click.argument('counts', type = click.Path(exists = True, dir_okay = False))
@click.argument('deviations', type = click.Path(exists = True, dir_okay = False))
@click.argument('outdir', type = click.Path(file_okay = False))
@click.option('--cells', type = click.Path(exists = True, dir_okay = False), default = None,
              help = 'Barcodes of the cells to keep, one per line.')
@click.option('-c', '--config', 'config_path', type = click.Path(exists = True, dir_okay = False),
              default = None, help = 'JSON configuration overriding the defaults.')
@click.option('--n-jobs', type = int, default = None, help = 'Number of parallel jobs.')
@click.option('--fdr', type = float, default = None, help = 'FDR cutoff of differential peaks.')
@click.option('--iterations', type = int, default = None, help = 'Number of jackstraw rounds.')
@click.option('--order', type = str, default = None,
              help = 'Comma separated display order of the modules, e.g. 3,1,2.')
@click.option('--score/--no-score', default = None, help = 'Score single cells for the modules.')
@click.option('--fasta', type = click.Path(exists = True, dir_okay = False), default = None,
              help = 'Reference genome for the gc content of peaks.')
@click.option('--no-figures', is_flag = True, help = 'Do not render figures.')
@click.option('-q', '--quiet', is_flag = True, help = 'Minimal output.')
def run(
    counts, deviations, outdir, cells, config_path, n_jobs, fdr,
    iterations, order, score, fasta, no_figures, quiet
):
    ''' Run the module analysis and save the results to OUTDIR. '''

    from chrmod.configuration import default as cfg
    from chrmod.pipeline import run as run_analysis

    if quiet: ansi.SILENT = True
    if config_path is not None: cfg.load(config_path)

    params = {}
    if n_jobs is not None: params['n_jobs'] = n_jobs
    if fdr is not None: params['fdr'] = fdr
    if iterations is not None: params['n_iterations'] = iterations
    if score is not None: params['score'] = score
    if fasta is not None: params['fasta'] = fasta
    if order is not None:
        try: params['module_order'] = [int(x) for x in order.split(',')]
        except ValueError as e: raise click.BadParameter(f'invalid module order `{order}`.') from e

    try:
        result = run_analysis(counts, deviations, cells = cells, **params)
        result.save(outdir, figures = not no_figures)
    except Exception as e:
        raise click.ClickException(str(e)) from e

    click.echo(repr(result))


@cli.command()
def version():
    ''' Show versions of the package and the environment. '''
    import chrmod
    chrmod.version()


if __name__ == '__main__':
    cli()
