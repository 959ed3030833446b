"""
Services: pipeline orchestration and optional artist enrichment
"""
