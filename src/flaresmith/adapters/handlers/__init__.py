"""Tree rewriting rules registered on the render engine."""
