"""Sparse matrices whose rows and columns are addressed by string identifiers."""

import numpy as np
import pandas as pd
import scipy.sparse


class IndexMap():
    """Immutable bijection between identifiers and the positions 0..n-1.

    Built once from an ordered collection of identifiers. The position of an
    identifier is its position in that collection.

    Parameters
    ----------
    identifiers : iterable of str
        Ordered identifiers, have to be unique.

    Raises
    ------
    ValueError
        If an identifier occurs more than once.
    """
    def __init__(self, identifiers):
        self._identifiers = tuple(identifiers)
        self._positions = {identifier: position for position, identifier in enumerate(self._identifiers)}
        if len(self._positions) != len(self._identifiers):
            index = pd.Index(self._identifiers)
            duplicates = [str(identifier) for identifier in index[index.duplicated()].unique()]
            raise ValueError("Duplicate identifiers in index: " + ", ".join(duplicates))

    @property
    def identifiers(self):
        return self._identifiers

    def get_loc(self, identifier):
        """Return the position of identifier, raises KeyError if unknown."""
        try:
            return self._positions[identifier]
        except KeyError:
            raise KeyError(f"Identifier {identifier} is not part of the index") from None

    def __getitem__(self, position):
        return self._identifiers[position]

    def __len__(self):
        return len(self._identifiers)

    def __iter__(self):
        return iter(self._identifiers)

    def __contains__(self, identifier):
        return identifier in self._positions

    def __eq__(self, other):
        if not isinstance(other, IndexMap):
            return NotImplemented
        return self._identifiers == other._identifiers

    def __hash__(self):
        return hash(self._identifiers)

    def __repr__(self):
        return f"IndexMap({list(self._identifiers)})"


class IndexedSparseMatrix():
    """Sparse matrix with identifier addressed rows and columns.

    The matrix exists in two forms. It is created in the assembly form, where
    values are collected as coordinates and repeated writes to the same cell
    accumulate. :meth:`to_compute_form` converts the matrix once into a
    compressed sparse column matrix (scipy.sparse.csc_matrix) which is used for
    multiplication. Identifiers are translated into positions only when values
    are written and when the matrix is exported.

    The matrix is lossy by design: values which are NaN or whose absolute value
    does not exceed *epsilon* are never stored.

    Parameters
    ----------
    row_index, col_index : :class:`IndexMap` or iterable of str
        Identifiers of rows and columns.
    epsilon : float, optional
        Threshold below which (inclusive) written values are dropped, defaults to 0.
    """
    def __init__(self, row_index, col_index, epsilon=0.0):
        self.row_index = row_index if isinstance(row_index, IndexMap) else IndexMap(row_index)
        self.col_index = col_index if isinstance(col_index, IndexMap) else IndexMap(col_index)
        self.epsilon = epsilon
        self._rows, self._cols, self._values = [], [], []
        self._csc = None

    @classmethod
    def from_csc(cls, row_index, col_index, csc, epsilon=0.0):
        """Create a matrix directly in compute form."""
        matrix = cls(row_index, col_index, epsilon)
        if csc.shape != matrix.shape:
            raise ValueError(f"Shape {csc.shape} does not fit indexes of shape {matrix.shape}")
        matrix._release_assembly_buffer()
        matrix._csc = scipy.sparse.csc_matrix(csc)
        return matrix

    @property
    def shape(self):
        return (len(self.row_index), len(self.col_index))

    @property
    def is_compute_form(self):
        return self._csc is not None

    @property
    def nnz(self):
        """Number of stored cells."""
        return self._matrix().nnz

    def add_item(self, row, col, value):
        """Add value to the cell (row, col).

        Values are accumulated. NaN values and values with an absolute value
        smaller or equal to epsilon are dropped.
        """
        if self._csc is not None:
            raise RuntimeError("Matrix is in compute form, items cannot be added.")
        if np.isnan(value) or abs(value) <= self.epsilon:
            return
        self._rows.append(self.row_index.get_loc(row))
        self._cols.append(self.col_index.get_loc(col))
        self._values.append(float(value))

    def to_compute_form(self):
        """Convert the matrix into compute form, this cannot be reverted."""
        if self._csc is None:
            self._csc = self._assemble()
            self._release_assembly_buffer()
        return self

    def _release_assembly_buffer(self):
        self._rows, self._cols, self._values = None, None, None

    def _assemble(self):
        return scipy.sparse.csc_matrix(
            (np.asarray(self._values, dtype=float),
             (np.asarray(self._rows, dtype=np.int64), np.asarray(self._cols, dtype=np.int64))),
            shape=self.shape)

    def _matrix(self):
        if self._csc is not None:
            return self._csc
        return self._assemble()

    @staticmethod
    def multiply(matrix_a, matrix_b):
        """Return the product of two matrices.

        Rows of the result are the rows of matrix_a, columns are the columns of
        matrix_b. Both factors are converted to compute form.

        Raises
        ------
        ValueError
            If the column index of matrix_a does not match the row index of matrix_b.
        """
        if matrix_a.col_index != matrix_b.row_index:
            raise ValueError("Cannot multiply matrices, column index of the first factor "
                             "does not match the row index of the second factor.")
        matrix_a.to_compute_form()
        matrix_b.to_compute_form()
        product = (matrix_a._csc @ matrix_b._csc).tocsc()
        return IndexedSparseMatrix.from_csc(matrix_a.row_index, matrix_b.col_index, product)

    def to_dense(self):
        return self._matrix().toarray()

    def to_map(self, fill_zeros=False):
        """Export the matrix into a nested dict row -> col -> value.

        Every row identifier is a key of the returned dict. With fill_zeros the
        inner dicts contain every column, otherwise only stored cells.
        """
        if fill_zeros:
            dense = self.to_dense()
            return {row: {col: float(dense[i, j]) for j, col in enumerate(self.col_index)}
                    for i, row in enumerate(self.row_index)}

        result = {row: {} for row in self.row_index}
        coo = self._matrix().tocoo()
        for i, j, value in zip(coo.row, coo.col, coo.data):
            result[self.row_index[i]][self.col_index[j]] = float(value)
        return result

    def to_dataframe(self, fill_zeros=True):
        """Export the matrix into a dense pandas.DataFrame.

        Without fill_zeros, cells that are not stored are NaN.
        """
        if fill_zeros:
            return pd.DataFrame(self.to_dense(), index=list(self.row_index),
                                columns=list(self.col_index))
        return (pd.DataFrame.from_dict(self.to_map(fill_zeros=False), orient="index")
                .reindex(index=list(self.row_index), columns=list(self.col_index)))
