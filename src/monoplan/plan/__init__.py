"""
Call graph and planner.

Exports the public API:
- Planner, Plan, Call
- CallPlanner, PrePlanner, CallDetails
- TaskRef, SyntheticGroup
"""
from .call import Call
from .planner import CallDetails, CallPlanner, Plan, Planner, PrePlanner
from .qualifiers import Qualifier, SyntheticGroup, TaskRef
