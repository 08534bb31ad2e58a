"""HTTP API for the MathKit computation core"""
