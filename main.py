#!/usr/bin/env python3
"""
Punto de entrada principal para mstodo-cli.
"""
import sys

from mstodo_cli.cli import main

if __name__ == "__main__":
    sys.exit(main())
