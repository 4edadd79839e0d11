import logging
from itertools import count
from time import sleep, perf_counter

from functions import identity_equality, logger_consumer, sink
from stream import Stream
from utils import setup_logging


def expensive_transform(x):
    # Simulate a costly step so laziness is visible
    print(f"  computing f({x}) ...")
    sleep(0.2)
    return x * x


setup_logging("INFO")

print("\n--- Demo: laziness (no work until a terminal operation) ---")
stream = (
    Stream.range(1, 10_000)
    .map(expensive_transform)
    .filter(lambda v: v % 2 == 0)
    .skip(3)
    .limit(5)
)

print("Declared pipeline. No output yet (nothing computed).")
print(stream.describe().model_dump_json(indent=2))
print("\nDraining (should compute only what's needed for 5 items):")
t0 = perf_counter()
out = stream.to_array()
t1 = perf_counter()
print(f"Result: {out}")
print(f"Time: {t1 - t0:.2f}s\n")

print("--- Demo: infinite sources with a short-circuit ---")
naturals = Stream.iterate(1, lambda n: n + 1)
print("First three naturals:", naturals.limit(3).to_array())
print("First square above 500:", Stream.iterate(1, lambda n: n + 1).map(lambda n: n * n)
      .filter(lambda n: n > 500).find_first().get())
print("Distinct after limit:", Stream.generate(lambda: 7).limit(10).distinct().to_array())
print()

print("--- Demo: stateful stages ---")
words = ["pear", "fig", "apple", "fig", "kiwi", "pear"]
print("Sorted distinct:", Stream.of(words).distinct().sorted().to_array())
print("Sorted by length (stable):",
      Stream.of(words).sorted(lambda a, b: len(a) - len(b)).to_array())
rows = [[1], [1], [2]]
print("Distinct by value:", Stream.of(rows).distinct().to_array(),
      "by identity:", Stream.of(rows).distinct(identity_equality).to_array())
print("Logging each element as it passes:")
Stream.of(words).limit(2).peek(logger_consumer(logging.INFO)).for_each(sink)
print()

print("--- Demo: flattening and concatenation ---")
print("flat_map_list:", Stream.of_values(1, 2, 3).flat_map_list(lambda n: [n] * n).to_array())
print("flat_map over infinite sub-streams:",
      Stream.of_values(10, 20).flat_map(lambda n: Stream.iterate(n, lambda k: k + 1).limit(2)).to_array())
print("concat:", Stream.concat(Stream.range(0, 3), Stream.of_iterable(count(100)).limit(2)).to_array())
print()

print("--- Demo: terminal reductions ---")
numbers = [4, 8, 15, 16, 23, 42]
print("sum via reduce:", Stream.of(numbers).reduce(lambda a, b: a + b).get())
print("max:", Stream.of(numbers).max().get(), "min:", Stream.of(numbers).min().get())
print("all even?", Stream.of(numbers).all_match(lambda n: n % 2 == 0))
print("range_closed(0, 10, 3):", Stream.range_closed(0, 10, 3).to_array())
