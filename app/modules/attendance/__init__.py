"""Attendance module"""
