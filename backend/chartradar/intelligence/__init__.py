"""
Intelligence: ad-hoc chart URL scanning
"""
from .oracle_scanner import OracleScanner, ScanResult, detect_source
