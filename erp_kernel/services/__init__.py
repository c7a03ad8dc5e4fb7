"""Kernel services: stateful operations that own no transaction boundary."""
