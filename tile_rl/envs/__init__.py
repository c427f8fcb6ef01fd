import gymnasium as gym

from .random_walk import RandomWalkEnv

gym.register(
    id="RandomWalk-v0",
    entry_point="tile_rl.envs.random_walk:RandomWalkEnv",
    max_episode_steps=200,
)

__all__ = ["RandomWalkEnv"]
