"""
Command-line interface for MrCloud.
"""
