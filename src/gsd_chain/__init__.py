"""GSD Auto-Chain - run the next workflow command when a step completes."""

from importlib.metadata import PackageNotFoundError, version

from gsd_chain.controller import ChainController
from gsd_chain.extractor import extract_next_command
from gsd_chain.schemas import ChainOutcome, ChainReport, ChainSettings

__all__ = ["ChainController", "ChainOutcome", "ChainReport", "ChainSettings", "extract_next_command"]

try:
    __version__ = version("gsd-auto-chain")
except PackageNotFoundError:
    __version__ = "0.0.0"
