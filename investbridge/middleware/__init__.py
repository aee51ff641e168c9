"""HTTP middleware: request context and error handling."""
