"""Language server surfacing klog validation errors as editor diagnostics."""

__version__ = "0.1.0"
