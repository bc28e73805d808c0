"""Entry point for running microbench as a module.

Usage:
    python -m microbench run benchmarks/
    python -m microbench history --db runs.sqlite
"""
import sys
from microbench.cli import main

if __name__ == "__main__":
    sys.exit(main())
