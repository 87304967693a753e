"""Policy execution on the centipede environment.

Runs a named policy for a number of decisions, resetting the environment
whenever an episode is truncated, and optionally records the reward metrics
to wandb.
"""

import argparse
import time
from typing import List, Optional

import numpy as np
from tqdm import tqdm

from centipede.locomotion.centipede_env import CentipedeEnv
from centipede.locomotion.config import get_env_config
from centipede.locomotion.context import EnvContext
from centipede.policies import BasePolicy, get_policy_class
from centipede.utils.stats_utils import StatsRecorder, WandbStatsRecorder


def run_policy(env: CentipedeEnv, policy: BasePolicy, vis_type: str) -> List[float]:
    """Executes a policy in the environment until `policy.n_steps_total` decisions ran.

    Args:
        env: The centipede environment.
        policy: The policy to execute.
        vis_type: 'view' paces the loop to real time for the viewer.

    Returns:
        The returns of all finished episodes.
    """
    episode_returns: List[float] = []
    obs, info = env.reset()
    policy.reset()

    p_bar = tqdm(total=policy.n_steps_total, desc="Running the policy")
    start_time = time.monotonic()
    step_idx = 0
    try:
        while step_idx < policy.n_steps_total:
            action = policy.step(obs, info)
            obs, reward, terminated, truncated, info = env.step(action)
            step_idx += 1
            p_bar.update(1)

            if terminated or truncated:
                episode_returns.append(info["episode_return"])
                p_bar.set_postfix(episode_return=f"{info['episode_return']:.3f}")
                obs, info = env.reset()
                policy.reset()

            if vis_type == "view":
                time_until_next_step = start_time + policy.control_dt * step_idx - time.monotonic()
                if time_until_next_step > 0:
                    time.sleep(time_until_next_step)

    except KeyboardInterrupt:
        print("KeyboardInterrupt recieved. Closing...")

    finally:
        p_bar.close()
        if step_idx > 0 and info["decision_count"] > 1:
            # Unfinished episode.
            episode_returns.append(info["episode_return"])

        policy.close()

    return episode_returns


def main(args=None):
    """Runs a policy on the centipede.

    Args:
        args (list, optional): List of command-line arguments. If None, defaults to sys.argv.
    """
    parser = argparse.ArgumentParser(description="Run a policy on the centipede.")
    parser.add_argument(
        "--policy",
        type=str,
        default="heuristic",
        help="The name of the policy module in centipede.policies.",
    )
    parser.add_argument(
        "--gin-file",
        type=str,
        default="",
        help="Gin file overriding the default configuration.",
    )
    parser.add_argument(
        "--vis",
        type=str,
        default="none",
        help="The visualization type.",
        choices=["view", "none"],
    )
    parser.add_argument(
        "--n-steps", type=int, default=1000, help="Number of decisions to run."
    )
    parser.add_argument("--seed", type=int, default=0, help="Random seed.")
    parser.add_argument(
        "--record",
        action="store_true",
        default=False,
        help="Record the reward metrics with wandb.",
    )
    parser.add_argument(
        "--note",
        type=str,
        default="",
        help="A note to add to the wandb run.",
    )
    args = parser.parse_args(args)

    cfg = get_env_config(args.gin_file if len(args.gin_file) > 0 else None)

    stats: Optional[StatsRecorder] = None
    if args.record:
        time_str = time.strftime("%Y%m%d_%H%M%S")
        stats = WandbStatsRecorder(
            name=f"centipede_{args.policy}_{time_str}", notes=args.note
        )

    context = EnvContext.create(seed=args.seed, stats=stats)
    env = CentipedeEnv(
        cfg, context, vis_type="view" if args.vis == "view" else ""
    )
    try:
        PolicyClass = get_policy_class(args.policy)
        policy = PolicyClass(args.policy, env, n_steps_total=args.n_steps)
        episode_returns = run_policy(env, policy, args.vis)
    finally:
        try:
            env.close()
        except Exception as e:
            print(f"Error closing simulation: {e}")

    print(f"Ran {args.policy} with {env.action_size} actions per decision.")
    if len(episode_returns) > 0:
        print(
            f"Episodes: {len(episode_returns)}, mean return: {np.mean(episode_returns):.4f}, "
            f"best return: {np.max(episode_returns):.4f}"
        )


if __name__ == "__main__":
    main()
