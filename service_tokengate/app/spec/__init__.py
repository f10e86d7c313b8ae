"""
Spec document package.

Reads YAML spec documents into a GateConfiguration and renders the
current configuration back into the same shape.
"""
