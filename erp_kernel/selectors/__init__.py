"""Read-only query selectors over the journal and the layer table."""
