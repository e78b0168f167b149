"""smsledger command line interface."""
