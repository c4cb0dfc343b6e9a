"""Console and progress helpers shared by the CLI and GUI."""
