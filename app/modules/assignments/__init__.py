"""Assignments module"""
