"""
WaveLens Module Entry Point
============================

Allows running the WaveLens CLI via: python -m wavelens
"""

from wavelens.cli import main

if __name__ == "__main__":
    main()
