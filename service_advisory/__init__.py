"""
Travel advisory gateway service package.
"""
