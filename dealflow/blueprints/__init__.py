"""
dealflow
HTTP blueprints.
"""
