"""
PageAdvisor - Suggestion & Impact Engine for landing pages

Turns landing-page analytics into a short list of content suggestions and
measures whether implemented suggestions moved the numbers.
"""

__version__ = "0.1.0"
__author__ = "PageAdvisor Team"
