"""Core of a deterministic WebAssembly smart-contract virtual machine."""

__version__ = "0.1.0"