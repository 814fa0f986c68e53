from chrmod.cli import cli

cli(prog_name = 'chrmod')
