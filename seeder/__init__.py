"""
Seeder package - synthetic data generation and bulk loading
"""

__version__ = '1.0.0'
