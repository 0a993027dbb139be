"""Allow running vdsource as ``python -m vdsource``."""
from .cli import main

main()
