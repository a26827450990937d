"""Identifier addressed sparse matrices.

All matrices of the flow decomposition, nodal injections, PTDF, PSDF and the
decomposed flows, are :class:`~flow_decomposition.matrix.IndexedSparseMatrix`
instances. Rows and columns are addressed by network identifiers, which are
mapped onto positions by an immutable :class:`~flow_decomposition.matrix.IndexMap`.
"""

from flow_decomposition.matrix.sparse_matrix import IndexMap, IndexedSparseMatrix
