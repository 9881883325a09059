from mpesa_c2b.main import run

run()
