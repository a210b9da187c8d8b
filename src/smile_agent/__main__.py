from .cli import app

app(prog_name="smile-agent")
