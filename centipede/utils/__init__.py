"""Utility modules for the centipede package.

This package contains helper functions and classes for:
- Vector, angle and interpolation math shared by the controller and sensors
- Statistics sinks for training metrics
- XML output of generated models
"""
