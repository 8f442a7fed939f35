from arena.envs.launch_env import LaunchEnv

__all__ = ["LaunchEnv"]
