"""WaveLens output."""

from wavelens.output.console import WaveLensConsoleOutput

__all__ = ["WaveLensConsoleOutput"]
