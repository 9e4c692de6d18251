from ghexport.cli.main import run

run()
