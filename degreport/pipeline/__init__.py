"""Report pipeline entrypoints."""


def run_pipeline(*args, **kwargs):
    from degreport.pipeline.runner import run_pipeline as _run_pipeline

    return _run_pipeline(*args, **kwargs)


def run_analysis(*args, **kwargs):
    from degreport.pipeline.runner import run_analysis as _run_analysis

    return _run_analysis(*args, **kwargs)


__all__ = ["run_pipeline", "run_analysis"]
