"""
Mixed Effects Example
=====================

Simulates a subjects-by-items reaction-time study, fits a model with crossed
random effects, and estimates power for the category effect.
"""

import dsw

print("=" * 60)
print("MIXED EFFECTS EXAMPLE")
print("=" * 60)

# 1. Default parameters: 100 subjects, 25 ingroup and 25 outgroup faces
params = dsw.CrossedParams()
print(params)

data = dsw.sim_crossed(params, seed=8675309)
print(f"\n{len(data)} trials")
print(data.head())

# 2. Fit and compare estimates with the parameters
fit = dsw.fit_crossed(data)
print("\nModel summary:")
print(dsw.tidy_mixed(fit).round(2))


# 3. Power for beta_1 with fewer subjects (mixed models are slow: few reps)
def analyse(data):
    table = dsw.tidy_mixed(dsw.fit_crossed(data))
    return table[table["effect"] == "fixed"]


power = dsw.simulate_power(
    dsw.sim_crossed,
    analyse,
    reps=20,
    seed=1,
    progress_callback=True,
    n_subj=30,
    n_ingroup=15,
    n_outgroup=15,
)
print("\nPower (20 replications, 30 subjects, 30 items):")
print(power.to_frame())
