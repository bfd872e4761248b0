"""Bindings, rich text rewriting and the batch filler."""
