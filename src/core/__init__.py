"""Core domain package for deadscope.

Core contains rule parsing, domain extraction, liveness resolution and the
rewrite decision engine without any HTTP, DNS or console-specific code.
"""
