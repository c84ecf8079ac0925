"""
Pure analytics: transaction classification, scoring functions, transfer risk,
and account user-type classification. No storage access.
"""
