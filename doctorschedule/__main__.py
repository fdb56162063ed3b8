#!/usr/bin/env python3
"""
Convenience entry point for running doctorschedule directly.

Usage: python -m doctorschedule [command] [options]
"""

from .cli.app import app

if __name__ == "__main__":
    app()
