import numpy as np

from maze_config import MAX_LOGIT
from maze_env import N_ACTIONS


class TabularSoftmaxPolicy:
    """One categorical distribution over the four moves per grid cell.

    ``logits`` is a flat float64 array of length ``height * width * n_actions``
    indexed as ``(row * width + col) * n_actions + action``. Wall cells own
    logits too; they are simply never visited.
    """

    def __init__(self, height, width, n_actions=N_ACTIONS):
        self.height = height
        self.width = width
        self.n_actions = n_actions
        self.logits = np.zeros(height * width * n_actions)

    @classmethod
    def from_logits(cls, height, width, logits, n_actions=N_ACTIONS):
        policy = cls(height, width, n_actions)
        policy.logits[:] = np.asarray(logits, dtype=float)
        return policy

    def _base(self, row, col):
        return (row * self.width + col) * self.n_actions

    def state_logits(self, row, col):
        """Writable view of the logits at one cell."""
        base = self._base(row, col)
        return self.logits[base:base + self.n_actions]

    def get_probs(self, row, col):
        z = self.state_logits(row, col)
        e = np.exp(z - z.max())
        return e / e.sum()

    def sample_action(self, row, col, rng):
        probs = self.get_probs(row, col)
        r = rng.random()
        cumulative = 0.0
        for a in range(self.n_actions):
            cumulative += probs[a]
            if r < cumulative:
                return a
        return self.n_actions - 1

    def score_function(self, row, col, action):
        # d log p(action | s) / d z[s, :]
        grad = -self.get_probs(row, col)
        grad[action] += 1.0
        return grad

    def entropy(self, row, col):
        probs = self.get_probs(row, col)
        nz = probs[probs > 0]
        return float(-(nz * np.log(nz)).sum())

    def clip_logits(self):
        z = self.logits.reshape(-1, self.n_actions)
        z -= z.max(axis=1, keepdims=True)
        np.clip(z, -MAX_LOGIT, MAX_LOGIT, out=z)

    def copy(self):
        return TabularSoftmaxPolicy.from_logits(self.height, self.width, self.logits, self.n_actions)
