"""Core utilities and shared infrastructure.

- config: Configuration loading and validation
- constants: File names, extensions and default limits
- exceptions: Pipeline exception hierarchy
"""
