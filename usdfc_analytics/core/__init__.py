"""
Core building blocks shared by every layer: closed enumerations and exceptions.
"""
