"""Security tests: authentication bypass and cross-company access attempts"""
