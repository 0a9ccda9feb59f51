"""Test package for modeseek.

This package contains:
- Unit tests (test_spatial.py, test_meanshift.py, test_diagnostics.py, test_config.py)
- Shared kernels and sample sets (conftest.py)
"""
