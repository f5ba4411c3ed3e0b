import logging

from errors import EmptySequenceError, InvalidRangeError, NotANumberError
from lazy import stream_from, range as lazy_range
from utils import measure_performance, get_performance_summary, setup_logging


def expensive_transform(x):
    # Print so laziness is visible
    print(f"  computing f({x}) ...")
    return x * x


def main():
    setup_logging(logging.INFO)

    print("\n--- Demo: laziness (no work until pulled) ---")
    pipeline = (
        lazy_range(1, 10_000)
        .map(expensive_transform)
        .filter(lambda v: v % 2 == 0)
        .skip(3)
        .take(5)
    )
    print("Constructed pipeline. No output yet (nothing computed).")
    print("\nDraining (should compute only what's needed for 5 items):")
    record = measure_performance("lazy_chain", pipeline.to_list)
    print(f"Result: {record['result']}")
    print(f"Time: {record['execution_time_ms']:.2f}ms\n")

    print("--- Demo: grouping (eager barrier) ---")
    stream_from([1, 2, 2, 2, 3, 4, 4]).group_by(lambda n: n).for_each(
        lambda group: print(f"  {group.key}: {group.values.to_list()}")
    )
    print()

    print("--- Demo: terminal evaluators ---")
    print(f"  sum(1..100) = {lazy_range(1, 100).sum()}")
    print(f"  min = {stream_from([7, 3, 9]).min()}, max = {stream_from([7, 3, 9]).max()}")
    print(f"  distinct = {sorted(stream_from([3, 1, 3, 2, 1]).to_set())}")
    print(f"  batches of 4: {lazy_range(1, 10).batch(4).to_list()}")
    print()

    print("--- Demo: single use ---")
    seq = stream_from([1, 2, 3])
    print(f"  first drain: {seq.to_list()} (state={seq.state.value})")
    print(f"  second drain: {seq.to_list()}")
    print()

    print("--- Demo: errors ---")
    for label, run in (
        ("range(5, 1)", lambda: lazy_range(5, 1)),
        ("sum([1, 'a', 3])", lambda: stream_from([1, "a", 3]).sum()),
        ("min([])", lambda: stream_from([]).min()),
    ):
        try:
            run()
        except (InvalidRangeError, NotANumberError, EmptySequenceError) as e:
            print(f"  {label}: {type(e).__name__}: {e}")

    print(f"\nPerformance summary: {get_performance_summary()}")


if __name__ == "__main__":
    main()
