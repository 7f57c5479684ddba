"""
Services layer for PageAdvisor.

The suggestion engine lives in its own package; import from there.
"""
