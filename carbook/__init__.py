"""Smart Cars booking backend"""
