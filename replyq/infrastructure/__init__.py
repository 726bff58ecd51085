"""Infrastructure - settings, database access, circuit breaking"""
