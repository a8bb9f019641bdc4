"""
Utils package
"""
