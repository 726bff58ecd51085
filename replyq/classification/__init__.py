"""Classification - text normalization, intent classification, entity extraction"""
