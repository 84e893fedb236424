"""Library module"""
