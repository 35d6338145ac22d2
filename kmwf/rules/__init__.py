"""
Pure business rules: certificate formats, item validation, dashboard
aggregation and role resolution. Nothing in this package touches the
database or the network.
"""
