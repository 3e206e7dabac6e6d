"""
roster_import/api package marker.
"""
