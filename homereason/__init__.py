"""Home Reasoner: rule-based inference for smart-home sensor facts.

Flow:
    sensor JSON -> SensorFacts -> FactBase
                -> ForwardChainer  -> inferred facts, actions, trace
                -> BackwardChainer -> provable?, proof tree
"""

__version__ = "0.1.0"
