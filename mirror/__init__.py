"""Mirror pipeline: normalization, transforms, store, stages and orchestration.

Entry point is `mirror.orchestrator.build_orchestrator(settings)`.
"""
