"""
qlearning.py — tabular Q-learning on a fixed 4x4 grid world.

Cells are addressed (x, y) with (0, 0) the top-left corner. Moves that would
leave the grid keep the agent in place and still cost a step.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Sequence, Tuple
import logging
import numpy as np

from .common import BaseModel, InvalidInput, array_or_none, make_rng

logger = logging.getLogger(__name__)

ACTIONS = ("up", "right", "down", "left")
MOVES = {0: (0, -1), 1: (1, 0), 2: (0, 1), 3: (-1, 0)}

DEFAULT_MAP = (
    "S...",
    ".T.T",
    "...T",
    "T..G",
)

REWARDS = {"G": 100.0, "T": -100.0}
STEP_REWARD = -1.0


class GridWorld:
    def __init__(self, layout: Sequence[str] = DEFAULT_MAP):
        rows = [str(r) for r in layout]
        if not rows or any(len(r) != len(rows[0]) for r in rows):
            raise InvalidInput("grid layout must be a non-empty rectangle")
        starts = [(x, y) for y, r in enumerate(rows) for x, c in enumerate(r) if c == "S"]
        if len(starts) != 1:
            raise InvalidInput("grid layout needs exactly one start cell 'S'")
        self.layout = rows
        self.height = len(rows)
        self.width = len(rows[0])
        self.start = starts[0]

    def cell(self, x: int, y: int) -> str:
        return self.layout[y][x]

    def reward(self, x: int, y: int) -> float:
        return REWARDS.get(self.cell(x, y), STEP_REWARD)

    def is_terminal(self, x: int, y: int) -> bool:
        return self.cell(x, y) in REWARDS

    def move(self, x: int, y: int, action: int) -> Tuple[int, int]:
        dx, dy = MOVES[action]
        return (min(self.width - 1, max(0, x + dx)), min(self.height - 1, max(0, y + dy)))


class QLearningAgent:
    def __init__(self, n_states: int, epsilon: float = 0.1, alpha: float = 0.1, gamma: float = 0.9):
        self.epsilon = float(epsilon)
        self.alpha = float(alpha)
        self.gamma = float(gamma)
        self.q_table = np.zeros((n_states, len(ACTIONS)))

    def greedy_action(self, s: int, rng: np.random.Generator) -> int:
        """Best action for state s; ties are broken uniformly at random."""
        q = self.q_table[s]
        best = np.flatnonzero(q == q.max())
        return int(best[rng.integers(len(best))])

    def choose_action(self, s: int, rng: np.random.Generator) -> int:
        if rng.random() < self.epsilon:
            return int(rng.integers(len(ACTIONS)))
        return self.greedy_action(s, rng)

    def learn(self, s: int, action: int, reward: float, s_next: int) -> float:
        predict = self.q_table[s, action]
        target = reward + self.gamma * self.q_table[s_next].max()
        self.q_table[s, action] = predict + self.alpha * (target - predict)
        return float(self.q_table[s, action])


class QLearningSession(BaseModel):
    task_type = "reinforcement"
    name = "qlearning"

    def __init__(self, epsilon: float = 0.1, alpha: float = 0.1, gamma: float = 0.9,
                 layout: Sequence[str] = DEFAULT_MAP, random_state: Optional[int] = None):
        self.env = GridWorld(layout)
        self.agent = QLearningAgent(self.env.width * self.env.height, epsilon, alpha, gamma)
        self.random_state = random_state
        self.reset()

    def reset(self):
        self.agent.q_table[:] = 0.0
        self.episode_ = 0
        self.total_steps_ = 0
        self.reward_history_: List[float] = []
        self.last_transition_: Optional[Dict[str, Any]] = None
        return self.new_episode()

    def new_episode(self):
        self.position = self.env.start
        self.episode_reward_ = 0.0
        self.episode_steps_ = 0
        return self

    def _state(self, x: int, y: int) -> int:
        return y * self.env.width + x

    def step(self, X=None, y=None) -> "QLearningSession":
        """One move plus one Q update; a terminal cell starts the next episode first."""
        if self.env.is_terminal(*self.position):
            self.new_episode()
        rng = make_rng(self.random_state, self.total_steps_)
        cx, cy = self.position
        s = self._state(cx, cy)
        action = self.agent.choose_action(s, rng)
        nx, ny = self.env.move(cx, cy, action)
        reward = self.env.reward(nx, ny)
        self.agent.learn(s, action, reward, self._state(nx, ny))

        self.position = (nx, ny)
        self.episode_reward_ += reward
        self.episode_steps_ += 1
        self.total_steps_ += 1
        self.last_transition_ = {"from": [cx, cy], "action": ACTIONS[action], "to": [nx, ny],
                                 "reward": reward, "terminal": self.env.is_terminal(nx, ny)}
        if self.env.is_terminal(nx, ny):
            self.episode_ += 1
            self.reward_history_.append(self.episode_reward_)
            logger.debug("episode %d finished with reward %.1f", self.episode_, self.episode_reward_)
        return self

    def run(self, n_steps: int = 1):
        for _ in range(int(n_steps)):
            self.step()
        return self

    def run_episodes(self, n_episodes: int, max_steps: int = 10000):
        target = self.episode_ + int(n_episodes)
        for _ in range(int(max_steps)):
            if self.episode_ >= target:
                break
            self.step()
        return self

    def fit(self, X=None, y=None):
        return self.run_episodes(100)

    def greedy_policy(self) -> List[List[Optional[str]]]:
        """Best action name per cell (None for terminal cells and unvisited states)."""
        policy: List[List[Optional[str]]] = []
        for y in range(self.env.height):
            row: List[Optional[str]] = []
            for x in range(self.env.width):
                q = self.agent.q_table[self._state(x, y)]
                if self.env.is_terminal(x, y) or not np.any(q):
                    row.append(None)
                else:
                    row.append(ACTIONS[int(np.argmax(q))])
            policy.append(row)
        return policy

    def q_values(self, x: int, y: int) -> Dict[str, float]:
        q = self.agent.q_table[self._state(x, y)]
        return {a: float(v) for a, v in zip(ACTIONS, q)}

    def predict(self, X):
        cells = np.asarray(X, dtype=int).reshape(-1, 2)
        return np.array([int(np.argmax(self.agent.q_table[self._state(x, y)])) for x, y in cells])

    def metrics(self, X=None, y=None):
        recent = self.reward_history_[-10:]
        return {"episode": self.episode_, "total_steps": self.total_steps_,
                "episode_steps": self.episode_steps_, "episode_reward": self.episode_reward_,
                "avg_recent_reward": float(np.mean(recent)) if recent else 0.0}

    def get_state(self):
        return {"epsilon": self.agent.epsilon, "alpha": self.agent.alpha, "gamma": self.agent.gamma,
                "layout": list(self.env.layout), "random_state": self.random_state,
                "q_table": self.agent.q_table.tolist(), "position": list(self.position),
                "episode": self.episode_, "total_steps": self.total_steps_,
                "episode_reward": self.episode_reward_, "episode_steps": self.episode_steps_,
                "reward_history": list(self.reward_history_)}

    def set_state(self, state):
        if "layout" in state:
            agent = self.agent
            self.env = GridWorld(state["layout"])
            self.agent = QLearningAgent(self.env.width * self.env.height, agent.epsilon, agent.alpha, agent.gamma)
        self.agent.epsilon = float(state.get("epsilon", self.agent.epsilon))
        self.agent.alpha = float(state.get("alpha", self.agent.alpha))
        self.agent.gamma = float(state.get("gamma", self.agent.gamma))
        self.random_state = state.get("random_state", self.random_state)
        q = array_or_none(state.get("q_table"))
        if q is not None:
            self.agent.q_table = q
        self.position = tuple(state.get("position", self.env.start))
        self.episode_ = int(state.get("episode", 0))
        self.total_steps_ = int(state.get("total_steps", 0))
        self.episode_reward_ = float(state.get("episode_reward", 0.0))
        self.episode_steps_ = int(state.get("episode_steps", 0))
        self.reward_history_ = list(state.get("reward_history", []))
        return self
