"""Staff module"""
