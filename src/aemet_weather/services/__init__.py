"""
Shared service utilities.

- http.py - requests session and the ``http_get`` transport used by every fetch
"""
