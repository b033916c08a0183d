# ternary_cache/__main__.py
from ternary_cache.cli import cli

if __name__ == "__main__":
    cli(prog_name="python -m ternary_cache")
