"""Drafting - reply generation, draft parsing, confidence scoring"""
