"""
Life path simulator backend.
"""
