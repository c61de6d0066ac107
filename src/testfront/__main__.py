"""Allow running testfront with python -m testfront."""

from testfront.cli import main

main()
