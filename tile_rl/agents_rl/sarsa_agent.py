from .base import BaseTileCodingAgent


class SARSAAgent(BaseTileCodingAgent):
    """
    Sarsa(lambda) agent with tile-coded action values.

    Sarsa is an on-policy algorithm: it learns the value of the policy it is
    actually following, exploration included.

    Key characteristics:
    - Updates after each step (not at episode end)
    - Uses Q(s',a') where a' is the action actually taken
    - Accumulating eligibility traces spread each TD error over recently active features
    - More conservative than Q-Learning in risky environments
    """

    def _next_value(self, next_state, next_action) -> float:
        """
        Q(s',a') := sum of the weights of the features of (s', a')

        :param next_state: Next state
        :param next_action: Next action (actually selected by policy)
        :return: Q-value of the action that will be taken
        """
        if next_action is None:
            raise ValueError("Sarsa needs the next action chosen by the policy")
        return self.get_value(next_state, next_action)
