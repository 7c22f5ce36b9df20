"""
Application services of the workstation API.
"""
