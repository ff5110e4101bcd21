"""
Command-line tools for the workspace API.
"""
