from pinboard.main import run

run()
