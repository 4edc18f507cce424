"""REST API for the gamification engine"""
