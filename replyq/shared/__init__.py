"""Shared - pipeline orchestration"""
