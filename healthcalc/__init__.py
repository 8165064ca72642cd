"""
Health Calculator Assessment Engine

Table-driven classification, weighted risk scoring and recommendation
mapping for consumer health calculators.
"""
__version__ = "0.1.0"
