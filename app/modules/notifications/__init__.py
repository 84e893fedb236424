"""Notifications module"""
