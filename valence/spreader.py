"""
Valence Spreader
================

Wrapper around ``MultipartiteValenceMatrix`` for the most common valence
task: ranking a set of documents from a small set of scored documents
and/or scored terms.

Usage:
    spreader = ValenceSpreader()
    spreader.add_document_term_occurrences("review-1", {"great", "plot"})
    spreader.add_document_term_occurrences("review-2", {"awful", "plot"})
    spreader.add_weighted_term("great", 1.0)
    spreader.add_weighted_term("awful", -1.0)
    result = spreader.spread_valence()
    result.document_weights["review-1"]   # > 0

Spreading needs both negative and positive scores. Datasets scored on a
one-sided scale (e.g. 1 to 9) should call ``center_weights_range`` first.

Terms and document ids may be any mutually sortable, hashable values; they
are sorted to give every element a stable index in the linear system.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Hashable, Iterable, Mapping, Tuple

import pandas as pd

from .config import DEFAULT_POWER, SPREADER_NUM_THREADS, SPREADER_TOLERANCE
from .multipartite import MultipartiteValenceMatrix
from .solvers import ConjugateGradientSolver, SolverStatus

logger = logging.getLogger(__name__)

TERM_GROUP = 0
DOCUMENT_GROUP = 1


@dataclass
class ValenceResult:
    """
    Scores produced by ``ValenceSpreader.spread_valence``.

    Term weights can be reused later as a lexicon; document weights rank the
    documents from one end of the valence spectrum to the other.
    """
    term_weights: Dict[Hashable, float]
    document_weights: Dict[Hashable, float]
    converged: bool
    iterations: int

    def to_dataframe(self) -> pd.DataFrame:
        """One row per term and document, columns ``kind``, ``id``, ``weight``."""
        records = [{'kind': 'term', 'id': term, 'weight': weight}
                   for term, weight in self.term_weights.items()]
        records.extend({'kind': 'document', 'id': doc_id, 'weight': weight}
                       for doc_id, weight in self.document_weights.items())
        return pd.DataFrame(records, columns=['kind', 'id', 'weight'])


def center_scores(scores: Dict[Hashable, Tuple[float, float]]):
    """
    Remap the scores of ``(score, trust)`` pairs in place so the minimum
    becomes -1 and the maximum +1. Trusts are kept.

    If every score is equal there is no range to stretch and all scores
    become 0.0.
    """
    if not scores:
        return
    values = [score for score, _ in scores.values()]
    low, high = min(values), max(values)
    if high == low:
        for key, (_, trust) in scores.items():
            scores[key] = (0.0, trust)
        return

    mult = 2.0 / (high - low)
    for key, (score, trust) in scores.items():
        if score == high:
            centered = 1.0
        else:
            centered = (score - low) * mult - 1.0
        scores[key] = (centered, trust)


class ValenceSpreader:
    """
    Spreads term and document scores across a document/term graph.

    Parameters
    ----------
    tolerance : float
        Squared-residual tolerance the conjugate gradient solve must reach
    num_threads : int
        Worker threads for the matrix-vector products. On small problems
        (< 100 documents) a single thread is often fastest.
    """

    def __init__(self,
                 tolerance: float = SPREADER_TOLERANCE,
                 num_threads: int = SPREADER_NUM_THREADS):
        self.weighted_terms: Dict[Hashable, Tuple[float, float]] = {}
        self.weighted_documents: Dict[Hashable, Tuple[float, float]] = {}
        self.documents: Dict[Hashable, Dict[Hashable, float]] = {}
        self._tolerance = None
        self._num_threads = None
        self.tolerance = tolerance
        self.num_threads = num_threads

    @property
    def tolerance(self) -> float:
        return self._tolerance

    @tolerance.setter
    def tolerance(self, value: float):
        if not value > 0:
            raise ValueError(f"Tolerance must be positive, received {value}")
        self._tolerance = float(value)

    @property
    def num_threads(self) -> int:
        return self._num_threads

    @num_threads.setter
    def num_threads(self, value: int):
        if value <= 0:
            raise ValueError(f"Number of threads must be at least 1, received {value}")
        self._num_threads = int(value)

    # -------------------------------------------------------------------------
    # Scores
    # -------------------------------------------------------------------------

    def add_weighted_term(self, term: Hashable, score: float, trust: float = 1.0):
        """
        Score ``term``. Only used if some document contains the term.

        ``trust`` must be positive and only matters relative to the other
        trusts.
        """
        if trust <= 0:
            raise ValueError(f"Trust must be greater than 0, received {trust}")
        self.weighted_terms[term] = (float(score), float(trust))

    def add_weighted_document(self, document_id: Hashable, score: float, trust: float = 1.0):
        """Score a document. Only used if a document with this id was added."""
        if trust <= 0:
            raise ValueError(f"Trust must be greater than 0, received {trust}")
        self.weighted_documents[document_id] = (float(score), float(trust))

    def center_weights_range(self):
        """
        Rescale term scores and document scores, each set independently, to
        span -1 to +1.

        Skip this if the two sets are meant to sit on different sides of the
        spectrum.
        """
        center_scores(self.weighted_terms)
        center_scores(self.weighted_documents)

    # -------------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------------

    def add_document_term_occurrences(self, document_id: Hashable, terms: Iterable[Hashable]):
        """
        Add a document as the set of terms it contains (each weighted 1.0).

        Re-using a document id replaces the earlier document.
        """
        self.documents[document_id] = {term: 1.0 for term in terms}

    def add_document_term_weights(self, document_id: Hashable, term_weights: Mapping[Hashable, float]):
        """
        Add a document with a positive weight per term (TF, TF-IDF, ...).

        Re-using a document id replaces the earlier document.
        """
        self.documents[document_id] = {term: float(weight)
                                       for term, weight in term_weights.items()}

    # -------------------------------------------------------------------------
    # Solve
    # -------------------------------------------------------------------------

    def spread_valence(self, power: int = DEFAULT_POWER) -> ValenceResult:
        """
        Solve for the valence of every document and every term they contain.

        Parameters
        ----------
        power : int
            How far scores spread. 1 only moves scores from documents to their
            terms and back; larger values reach farther, but are not an exact
            hop count. 10 has worked well for text.

        Returns
        -------
        ValenceResult
            Scores for all documents and all terms in them
        """
        if power <= 0:
            raise ValueError(f"Unable to work with non-positive power: {power}")

        ordered_terms = sorted({term for terms in self.documents.values() for term in terms})
        ordered_documents = sorted(self.documents)
        term_index = {term: i for i, term in enumerate(ordered_terms)}
        document_index = {doc_id: i for i, doc_id in enumerate(ordered_documents)}
        num_terms = len(ordered_terms)

        matrix = MultipartiteValenceMatrix([num_terms, len(ordered_documents)],
                                           power, self.num_threads)
        for doc_id in ordered_documents:
            for term, weight in self.documents[doc_id].items():
                matrix.add_relationship(TERM_GROUP, term_index[term],
                                        DOCUMENT_GROUP, document_index[doc_id], weight)

        for term, (score, trust) in self.weighted_terms.items():
            if term in term_index:
                matrix.set_elements_score(TERM_GROUP, term_index[term], trust, score)
            else:
                logger.debug("Scored term %r does not occur in any document; skipped", term)
        for doc_id, (score, trust) in self.weighted_documents.items():
            if doc_id in document_index:
                matrix.set_elements_score(DOCUMENT_GROUP, document_index[doc_id], trust, score)
            else:
                logger.debug("Scored document %r was never added; skipped", doc_id)

        rhs = matrix.init()
        solver = ConjugateGradientSolver(rhs, rhs, tolerance=self.tolerance)
        solution = solver.learn(matrix).output
        logger.info("Spread valence over %d terms and %d documents in %d iterations (%s)",
                    num_terms, len(ordered_documents), solver.iteration, solver.status.value)

        return ValenceResult(
            term_weights={term: float(solution[i]) for i, term in enumerate(ordered_terms)},
            document_weights={doc_id: float(solution[num_terms + i])
                              for i, doc_id in enumerate(ordered_documents)},
            converged=solver.status is SolverStatus.CONVERGED,
            iterations=solver.iteration,
        )
