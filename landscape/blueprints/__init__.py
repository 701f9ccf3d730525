"""
ERP Landscape Analyzer
Blueprint registry.
"""
