from docqa.main import run

run()
