"""wasmdev - local development server for WebAssembly builds."""

__version__ = "0.1.0"
