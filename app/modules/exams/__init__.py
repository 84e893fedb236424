"""Exams module"""
