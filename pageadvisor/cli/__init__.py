"""
PageAdvisor CLI
"""
