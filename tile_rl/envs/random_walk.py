from typing import Optional

import gymnasium as gym
import numpy as np

LEFT = 0
RIGHT = 1


class RandomWalkEnv(gym.Env):
    """
    Deterministic corridor walk.

    Positions 0 and `n_states + 1` are terminal, the walk starts in the middle.
    Action 0 moves left, action 1 moves right. Reaching the right end pays 1,
    every other transition pays 0, so the shortest episode takes
    `n_states + 1 - start` steps.
    """

    metadata = {"render_modes": ["ansi"]}

    def __init__(self, n_states: int = 5, render_mode: Optional[str] = None):
        """
        :param n_states: Number of non-terminal positions
        :param render_mode: None or "ansi"
        """
        if n_states < 1:
            raise ValueError(f"n_states must be positive, got {n_states}")
        self.n_states = n_states
        self.start = (n_states + 1) // 2
        self.observation_space = gym.spaces.Discrete(n_states + 2)
        self.action_space = gym.spaces.Discrete(2)
        self.render_mode = render_mode
        self.position = self.start

    def reset(self, *, seed: Optional[int] = None, options: Optional[dict] = None):
        super().reset(seed=seed)
        self.position = self.start
        return self.position, {}

    def step(self, action):
        if not self.action_space.contains(int(action)):
            raise ValueError(f"Invalid action {action}")

        self.position += 1 if int(action) == RIGHT else -1
        terminated = self.position in (0, self.n_states + 1)
        reward = 1.0 if self.position == self.n_states + 1 else 0.0
        return self.position, reward, terminated, False, {}

    def render(self):
        cells = np.full(self.n_states + 2, ".")
        cells[[0, -1]] = "T"
        cells[self.position] = "A"
        return "".join(cells)
