"""LLM access - Gemini model management, retries, bounded calls"""
