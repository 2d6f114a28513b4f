"""Console script for delivery_encoder."""

import typer

from delivery_encoder.overlay_frames.cli import encode, probe

app = typer.Typer()


@app.command()
def version():
    """Display version information."""
    typer.echo("Delivery Encoder v0.1.0")
    raise typer.Exit()


app.command()(encode)
app.command()(probe)


if __name__ == "__main__":
    app()
