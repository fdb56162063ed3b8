"""
CLI layer - Typer application.
"""
