"""
RL Agents Package

This package contains gradient-descent TD agents that approximate action values
with tile coding and assign credit with eligibility traces:
- Sarsa(lambda) (TD on-policy):
    Learns the value of the policy it is actually following (including exploration).
    delta = r + γ·Q(s',a') - Q(s,a), w := w + α·delta·e
- Q(lambda) (TD off-policy, Watkins):
    Learns the optimal action-value function by bootstrapping from the best next action.
    delta = r + γ·max(Q(s',a')) - Q(s,a), traces cut after exploratory actions
- Dyna-Q (model-based):
    Q(lambda) plus planning: every real step is recorded in a per state-action
    transition model, from which simulated steps are replayed.

All agents inherit from BaseTileCodingAgent and share common functionality.
"""

from .base import BaseTileCodingAgent
from .dyna_q_agent import DynaQAgent
from .policy import EpsilonGreedy, Greedy, Policy, Softmax
from .q_agent import QLearningAgent
from .sarsa_agent import SARSAAgent
from .transition import StateActionTransition

__all__ = [
    "BaseTileCodingAgent",
    "DynaQAgent",
    "EpsilonGreedy",
    "Greedy",
    "Policy",
    "QLearningAgent",
    "SARSAAgent",
    "Softmax",
    "StateActionTransition",
]
