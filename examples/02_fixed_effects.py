"""
Fixed Effects Example
=====================

Simulates a 2x2 between-subjects design, runs the ANOVA, and finds the
sample size needed to detect the interaction.
"""

import dsw

print("=" * 60)
print("FIXED EFFECTS EXAMPLE")
print("=" * 60)

# Treatment helps young participants only: a pure interaction pattern
mu = {"A1_B1": 0.0, "A1_B2": 0.0, "A2_B1": 0.5, "A2_B2": 0.0}

# 1. One data set
data = dsw.sim_factorial(n=30, mu=mu, sd=1, seed=90210)
print(data.groupby(["A", "B"], observed=True)["y"].agg(["mean", "std", "count"]).round(2))

# 2. ANOVA
print("\nANOVA (Type III, sum-to-zero contrasts):")
print(dsw.anova(data, dv="y", between=["A", "B"]).round(3))


# 3. Power across sample sizes
def simulate(n, seed=None):
    return dsw.sim_factorial(n=n, mu=mu, sd=1, seed=seed)


def analyse(data):
    return dsw.anova(data, dv="y", between=["A", "B"])


grid = dsw.power_grid(
    simulate,
    analyse,
    grid={"n": [20, 40, 60, 80, 100]},
    reps=200,
    seed=42,
    progress_callback=dsw.PrintReporter(),
)
print("\nPower by cell size:")
print(grid.data.pivot(index="n", columns="term", values="power"))

grid.plot("n", terms=["A:B"], title="Power for the A:B interaction")
