"""
risk - Disaster risk assessment engine.

Sub-modules:
    models       - Data structures shared across the engine
    classifiers  - Free-text alert vocabulary → closed categories
    extractors   - Threshold rules over multi-day forecasts
    aggregator   - Overall risk level + ordered safety recommendations
    safety       - Instantaneous weather safety checks
"""
