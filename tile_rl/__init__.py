"""
Tile coding function approximation and TD learning with eligibility traces.

- coding: dimension descriptors and tile codes (collision-free and hashed)
- agents_rl: Sarsa(lambda), Watkins' Q(lambda) and Dyna-Q agents, transition models and policies
- envs: small gymnasium environments used as test beds
"""

__version__ = "0.1.0"
