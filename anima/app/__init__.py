"""Runtime composition."""

from anima.app.bootstrap import AnimaRuntime, build_runtime

__all__ = ["AnimaRuntime", "build_runtime"]
