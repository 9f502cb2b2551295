import logging

import typer
import uvicorn

from confdrop.config import settings
from confdrop.services.auth import hash_admin_code

app = typer.Typer(help="CLI for the confdrop file distribution service.")
logger = logging.getLogger(__name__)


@app.command("hash-code")
def hash_code(
    code: str = typer.Argument(..., help="The admin code to hash."),
    rounds: int = typer.Option(10, help="bcrypt cost factor."),
):
    """
    Prints a bcrypt hash of the admin code, to be set as ADMIN_HASH.
    """
    if len(code) != settings.ADMIN_CODE_LENGTH:
        typer.echo(f"The code must contain {settings.ADMIN_CODE_LENGTH} characters.", err=True)
        raise typer.Exit(code=1)
    typer.echo(hash_admin_code(code, rounds=rounds))


@app.command()
def serve(
    host: str = typer.Option(settings.API_HOST, help="Bind address."),
    port: int = typer.Option(settings.API_PORT, help="Listening port."),
    reload: bool = typer.Option(False, help="Reload on code changes."),
):
    """
    Runs the API server with uvicorn.
    """
    logger.info(f"Starting confdrop on {host}:{port}")
    uvicorn.run("confdrop.main:app", host=host, port=port, reload=reload, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    app()
