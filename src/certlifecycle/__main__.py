"""Allow ``python -m certlifecycle``."""

from certlifecycle.cli.main import main

main()
