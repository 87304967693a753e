"""Procedural MJCF descriptions of the centipede body."""
