"""Consensus synthesis and approval for section responses."""
