"""
progression — Learning Progression Engine
=========================================
In-memory progression calculator for a single learner: lesson gating,
completion aggregation, quiz grading and certificate issuance.

Module map
----------
  models.py          Pydantic catalog + progress models and enums.
  catalog.py         Built-in curriculum and load-time catalog validation.
  config.py          Settings loaded from .env (certificate, catalog, logging).
  errors.py          Exception taxonomy (NotFound, InvalidAnswer, Catalog).

  resolver.py        Accessibility Resolver: is a lesson unlocked?
  aggregator.py      Per-module and overall completion percentages.
  progress_store.py  Mutations over one ProgressRecord + JSON helpers.
  grader.py          Quiz Grader: pure scoring of a quiz attempt.
  certification.py   Certification Gate + reportlab certificate PDF.
  insights.py        Role paths, next-lesson recommendations, insights.
  engine.py          ProgressionEngine facade with injected collaborators.

Call flow
---------
  UI event → ProgressionEngine
      reads:   Catalog (frozen)  →  resolver / aggregator  (pure)
      writes:  progress_store    →  persist_progress(record)  (injected)
"""
__version__ = "0.1.0"
