"""Centipede locomotion: skeleton, sensing, reset and the decision loop.

This package contains the pieces of the centipede agent and the environment
that wires them to a physics backend:

- Bones mapping normalized actions to drive targets and rotations to observations
- Ray based ground contact sensing for the legs
- Deferred pose reset of the articulated hierarchy
- The locomotion controller with reward shaping and action interpolation
- Gin configuration and the gym-style CentipedeEnv
"""
