"""Schemas shared by the Fundbook server and its clients."""
