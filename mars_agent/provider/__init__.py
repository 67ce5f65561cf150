"""Tool provider process: Mars rover photo tools served over stdio."""

import click

from ..config import Config
from ..logger import PROVIDER, setup_logger
from .nasa import NasaClient
from .server import ProviderServer
from .tools import MarsPhotosTools

__all__ = ["main", "ProviderServer", "MarsPhotosTools", "NasaClient"]


@click.command()
def main():
    """Serve the Mars photo tools over stdin/stdout."""
    config = Config.load()
    # stdout carries protocol messages; logs go to stderr and provider.log only.
    setup_logger("mars_agent", PROVIDER, verbose=config.verbose)
    server = ProviderServer(MarsPhotosTools(NasaClient(config.nasa_api_key)))
    server.serve()
