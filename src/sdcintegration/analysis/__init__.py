"""
Finite element pieces for the one-dimensional spatial discretization.
It deals with nodes, line elements, meshes and global sparse matrices only.
"""
