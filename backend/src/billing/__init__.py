"""AI-scan credit purchases and history"""
