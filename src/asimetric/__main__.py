"""
Allow running asimetric as a module: python -m asimetric
"""

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
