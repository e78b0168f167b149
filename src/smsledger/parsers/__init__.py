"""smsledger parsers - SMS transaction extraction and SMS export loading."""
