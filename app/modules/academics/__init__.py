"""Academics module"""
