"""API routers, one module per pipeline stage"""
