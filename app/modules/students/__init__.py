"""Students module"""
