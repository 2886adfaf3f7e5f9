"""
World package -- life path graph store and pure derivations

- age_mapper.py: x coordinate -> age
- identity.py: per-session id allocation
- life_graph.py: LifeGraph container
- progression.py: stats/skills on acceptance
"""
