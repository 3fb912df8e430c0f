"""Composable single-pass left folds.

A :class:`Fold` describes how to reduce a sequence to one value. Folds are
combined with :func:`combine` (or the n-ary :func:`lift`) so that any number
of independent statistics are computed while the input is read only once.
"""

from __future__ import annotations

from typing import Any, Callable, Generic, Hashable, Iterable, Optional, Sequence, TypeVar

A = TypeVar("A")
B = TypeVar("B")
K = TypeVar("K", bound=Hashable)
R = TypeVar("R")

_MISSING = object()


def _identity(value: Any) -> Any:
    return value


class Fold(Generic[A, R]):
    """A left fold over elements of type ``A`` with a result of type ``R``.

    ``start`` builds a fresh accumulator, ``step`` feeds one element into it
    and ``finish`` turns the final accumulator into the result. A fold holds
    no state of its own: every :meth:`run` owns its accumulator, and the
    result exists only once the input is exhausted.
    """

    __slots__ = ("_start", "_step", "_finish")

    def __init__(
        self,
        start: Callable[[], Any],
        step: Callable[[Any, A], Any],
        finish: Callable[[Any], R] = _identity,
    ) -> None:
        self._start = start
        self._step = step
        self._finish = finish

    def run(self, elements: Iterable[A]) -> R:
        """Consume ``elements`` once, left to right, and return the result."""
        acc = self._start()
        step = self._step
        for element in elements:
            acc = step(acc, element)
        return self._finish(acc)

    def map(self, fn: Callable[[R], B]) -> "Fold[A, B]":
        finish = self._finish
        return Fold(self._start, self._step, lambda acc: fn(finish(acc)))

    def map_input(self, transform: Callable[[B], A]) -> "Fold[B, R]":
        return map_input(self, transform)

    def ap(self, argument: "Fold[A, Any]") -> "Fold[A, Any]":
        return combine(self, argument)


def pure(value: R) -> Fold[Any, R]:
    """A fold that ignores its input and yields ``value``."""
    return Fold(lambda: None, lambda acc, _element: acc, lambda _acc: value)


def combine(functions: Fold[A, Callable[[B], R]], argument: Fold[A, B]) -> Fold[A, R]:
    """Run both folds in lockstep and apply the first result to the second.

    Every element is handed to ``functions`` and then to ``argument``; neither
    fold sees the input reordered or buffered.
    """
    f_start, f_step, f_finish = functions._start, functions._step, functions._finish
    x_start, x_step, x_finish = argument._start, argument._step, argument._finish

    def start() -> tuple[Any, Any]:
        return f_start(), x_start()

    def step(acc: tuple[Any, Any], element: A) -> tuple[Any, Any]:
        return f_step(acc[0], element), x_step(acc[1], element)

    def finish(acc: tuple[Any, Any]) -> R:
        return f_finish(acc[0])(x_finish(acc[1]))

    return Fold(start, step, finish)


def lift(fn: Callable[..., R], *folds: Fold[A, Any]) -> Fold[A, R]:
    """Combine ``folds`` into one fold whose result is ``fn(*results)``."""
    combined: Fold[A, Any] = pure(_curry(fn, len(folds)))
    for fold in folds:
        combined = combine(combined, fold)
    return combined


def sequence(folds: Sequence[Fold[A, R]]) -> Fold[A, list[R]]:
    return lift(lambda *results: list(results), *folds)


def _curry(fn: Callable[..., R], arity: int) -> Any:
    def collect(args: tuple[Any, ...]) -> Any:
        if len(args) == arity:
            return fn(*args)
        return lambda value: collect(args + (value,))

    return collect(())


def map_input(fold: Fold[A, R], transform: Callable[[B], A]) -> Fold[B, R]:
    """Feed ``transform(element)`` to ``fold`` instead of ``element``."""
    inner_step = fold._step
    return Fold(fold._start, lambda acc, element: inner_step(acc, transform(element)), fold._finish)


def filter_input(fold: Fold[A, R], predicate: Callable[[A], bool]) -> Fold[A, R]:
    """Feed ``fold`` only the elements accepted by ``predicate``."""
    inner_step = fold._step

    def step(acc: Any, element: A) -> Any:
        if predicate(element):
            return inner_step(acc, element)
        return acc

    return Fold(fold._start, step, fold._finish)


def only_present(fold: Fold[A, R]) -> Fold[Optional[A], R]:
    return filter_input(fold, lambda element: element is not None)


def general_fold(seed: R, step: Callable[[R, A], R]) -> Fold[A, R]:
    """The primitive fold. ``step`` must return a new accumulator."""
    return Fold(lambda: seed, step)


def first() -> Fold[A, Optional[A]]:
    """The first element, or ``None`` for an empty input."""
    return Fold(
        lambda: _MISSING,
        lambda acc, element: element if acc is _MISSING else acc,
        lambda acc: None if acc is _MISSING else acc,
    )


def last() -> Fold[A, Optional[A]]:
    """The last element, or ``None`` for an empty input."""
    return Fold(
        lambda: _MISSING,
        lambda _acc, element: element,
        lambda acc: None if acc is _MISSING else acc,
    )


def length() -> Fold[Any, int]:
    return Fold(lambda: 0, lambda count, _element: count + 1)


def _append(acc: list[Any], element: Any) -> list[Any]:
    acc.append(element)
    return acc


def _extend(acc: list[Any], elements: Iterable[Any]) -> list[Any]:
    acc.extend(elements)
    return acc


def to_list() -> Fold[A, list[A]]:
    return Fold(list, _append)


def flatten_concat() -> Fold[Iterable[A], list[A]]:
    """Concatenate the element sequences in input order."""
    return Fold(list, _extend)


def group_contiguous(
    key: Callable[[A], K],
    inner: Fold[A, B],
    outer: Optional[Fold[B, R]] = None,
) -> Fold[A, R]:
    """Run ``inner`` on every maximal run of elements with equal keys.

    Keys are compared with ``==`` between neighbours only, so ``[a, a, b, a]``
    forms three groups. The per-group results are fed to ``outer`` (by
    default collected into a list) in input order.
    """
    outer = outer if outer is not None else to_list()
    i_start, i_step, i_finish = inner._start, inner._step, inner._finish
    o_start, o_step, o_finish = outer._start, outer._step, outer._finish

    def start() -> tuple[Any, Any, Any]:
        return o_start(), _MISSING, None

    def step(acc: tuple[Any, Any, Any], element: A) -> tuple[Any, Any, Any]:
        outer_acc, current, inner_acc = acc
        element_key = key(element)
        if current is _MISSING:
            return outer_acc, element_key, i_step(i_start(), element)
        if element_key == current:
            return outer_acc, current, i_step(inner_acc, element)
        outer_acc = o_step(outer_acc, i_finish(inner_acc))
        return outer_acc, element_key, i_step(i_start(), element)

    def finish(acc: tuple[Any, Any, Any]) -> R:
        outer_acc, current, inner_acc = acc
        if current is not _MISSING:
            outer_acc = o_step(outer_acc, i_finish(inner_acc))
        return o_finish(outer_acc)

    return Fold(start, step, finish)


def run_on_selected_runs(inner: Fold[A, B], outer: Fold[B, R]) -> Fold[tuple[bool, A], R]:
    """Run ``inner`` on every maximal run of selected elements.

    The input is ``(selected, element)`` pairs. Unselected elements end the
    current run and are otherwise dropped; ``outer`` receives one result per
    run.
    """
    i_start, i_step, i_finish = inner._start, inner._step, inner._finish
    o_start, o_step, o_finish = outer._start, outer._step, outer._finish

    def start() -> tuple[Any, Any]:
        return o_start(), _MISSING

    def step(acc: tuple[Any, Any], pair: tuple[bool, A]) -> tuple[Any, Any]:
        outer_acc, inner_acc = acc
        selected, element = pair
        if selected:
            if inner_acc is _MISSING:
                inner_acc = i_start()
            return outer_acc, i_step(inner_acc, element)
        if inner_acc is not _MISSING:
            outer_acc = o_step(outer_acc, i_finish(inner_acc))
        return outer_acc, _MISSING

    def finish(acc: tuple[Any, Any]) -> R:
        outer_acc, inner_acc = acc
        if inner_acc is not _MISSING:
            outer_acc = o_step(outer_acc, i_finish(inner_acc))
        return o_finish(outer_acc)

    return Fold(start, step, finish)


def _selected(pair: tuple[bool, Any]) -> bool:
    return pair[0]


def _element(pair: tuple[bool, A]) -> A:
    return pair[1]


def on_all(fold: Fold[A, R]) -> Fold[tuple[bool, A], R]:
    """Adapt ``fold`` to ``(selected, element)`` pairs, ignoring the flag."""
    return map_input(fold, _element)


def on_selected(fold: Fold[A, R]) -> Fold[tuple[bool, A], R]:
    """Adapt ``fold`` to ``(selected, element)`` pairs, skipping unselected ones."""
    return filter_input(map_input(fold, _element), _selected)
