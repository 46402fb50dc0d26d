from library_gateway.main import run

run()
