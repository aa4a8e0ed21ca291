"""Settings package for the reservation engine.

`base.py` contains common configuration shared across environments. The
`dev.py`, `test.py` and `prod.py` modules extend it with environment
specific overrides.
"""
