"""LSP transport for the klog language server."""
