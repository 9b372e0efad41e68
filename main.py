#!/usr/bin/env python3
"""
LLM Speedometer - Main entry point for running benchmarks.

Usage:
    python main.py [command] [options]

Commands:
    bench       - Benchmark one model (provider:model), print JSON
    run         - Benchmark several models concurrently and rank them
    track       - Repeat runs on an interval, appending to a CSV
    providers   - List known providers
"""

import sys

from llm_speedometer.cli import main

if __name__ == "__main__":
    sys.exit(main())
