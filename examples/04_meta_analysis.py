"""
Meta-Analytic Power Example
===========================

How many studies does a meta-analysis need to detect a small effect,
and how does heterogeneity change the answer?
"""

import dsw

print("=" * 60)
print("META-ANALYTIC POWER EXAMPLE")
print("=" * 60)

effect_size = 0.2  # Cohen's d
study_size = 30  # participants per group in each study

print(f"\nSingle study of {study_size} per group, d = {effect_size}:")
print(f"  power = {dsw.meta_power(effect_size, study_size, k=1):.2f}")

curve = dsw.meta_power_curve(effect_size, study_size, k_range=range(2, 31, 4))
print("\nPower by number of studies and heterogeneity:")
print(curve.pivot(index="k", columns="heterogeneity", values="power").round(2))
