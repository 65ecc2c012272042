"""
Reconciliation summary models.

Every unit of work (one secret, one variable, one repository listing)
produces an OperationResult. The driver collects them into a
ReconcileSummary so callers see what failed without scraping logs.
"""

from __future__ import annotations

from collections import Counter

from pydantic import BaseModel, Field


class OperationResult(BaseModel):
	"""Outcome of one unit of work."""

	action: str = Field(description="export, create, update or migrate")
	level: str
	provider: str
	name: str
	target: str = Field(description="owner or owner/repo the call addressed")
	ok: bool = True
	error: str | None = None


class ReconcileSummary(BaseModel):
	"""Aggregate of all OperationResults for one command."""

	owner: str
	results: list[OperationResult] = Field(default_factory=list)

	def record(self, result: OperationResult) -> OperationResult:
		self.results.append(result)
		return result

	def success(self, action: str, level: str, provider: str, name: str,
	            target: str) -> OperationResult:
		return self.record(
		    OperationResult(action=action, level=level, provider=provider,
		                    name=name, target=target))

	def failure(self, action: str, level: str, provider: str, name: str,
	            target: str, error: Exception | str) -> OperationResult:
		return self.record(
		    OperationResult(action=action, level=level, provider=provider,
		                    name=name, target=target, ok=False,
		                    error=str(error)))

	@property
	def succeeded(self) -> int:
		return sum(1 for r in self.results if r.ok)

	@property
	def failed(self) -> int:
		return sum(1 for r in self.results if not r.ok)

	@property
	def failures(self) -> list[OperationResult]:
		return [r for r in self.results if not r.ok]

	@property
	def has_failures(self) -> bool:
		return self.failed > 0

	def counts(self) -> dict[tuple[str, str], tuple[int, int]]:
		"""Return ``{(level, provider): (succeeded, failed)}`` in first-seen order."""
		ok: Counter[tuple[str, str]] = Counter()
		bad: Counter[tuple[str, str]] = Counter()
		order: list[tuple[str, str]] = []
		for r in self.results:
			key = (r.level, r.provider)
			if key not in order:
				order.append(key)
			if r.ok:
				ok[key] += 1
			else:
				bad[key] += 1
		return {key: (ok[key], bad[key]) for key in order}


__all__ = ["OperationResult", "ReconcileSummary"]
