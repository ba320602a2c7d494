"""Compute engine de referência (pandas) e expressões de agregação."""
