from .base import BaseTileCodingAgent


class QLearningAgent(BaseTileCodingAgent):
    """
    Watkins' Q(lambda) agent with tile-coded action values.

    Q-Learning is an off-policy algorithm that learns the optimal action-value
    function by bootstrapping from the best next action.

    Key characteristics:
    - Updates after each step (not at episode end)
    - Off-policy: learns optimal policy while following the behaviour policy
    - Uses max Q(s',a') for updates (optimistic)
    - Traces are cut after an exploratory action, since the following rewards
      no longer belong to the greedy policy
    """

    def _next_value(self, next_state, next_action) -> float:
        """
        Off-policy target: max over the available actions of Q(s', a).

        :param next_state: Next state
        :param next_action: Ignored, the greedy action is used instead
        :return: Highest Q-value in `next_state`
        """
        return max(self.get_value(next_state, action) for action in self.actions)

    def step(
        self,
        state,
        action,
        reward: float,
        next_state,
        next_action=None,
        done: bool = False,
    ) -> float:
        td_error = super().step(state, action, reward, next_state, next_action, done)

        # ties with the best action still count as greedy
        if not done and next_action is not None:
            if self.get_value(next_state, next_action) < self._next_value(
                next_state, None
            ):
                self.reset_traces()

        return td_error
