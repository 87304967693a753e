"""Centipede: decision-driven locomotion for a multi-segment, multi-legged body.

This package provides tools and utilities for:
- An abstract articulated-body contract and a MuJoCo implementation of it
- Procedural generation of the centipede MJCF model
- Bones, ground contact sensing and hierarchy resets
- The locomotion controller that turns sparse decisions into per-tick joint targets
- A gym-style environment, simple policies and a command line runner

The controller only talks to the abstract physics contract in `centipede.sim`,
so it can be driven by any backend that implements it.
"""
