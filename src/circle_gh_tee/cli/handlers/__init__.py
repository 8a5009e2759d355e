from .run import run_and_comment

__all__ = ["run_and_comment"]
