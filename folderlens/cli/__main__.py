"""Allow ``python -m folderlens.cli`` execution."""

from folderlens.cli.ingest import main

main()
