"""
Synthetic event tables with the shapes of the reference datasets.

Muon events: signed truth pT (sign = charge), bending angle difference
dPhi12 roughly proportional to charge / pT, CLCT pattern codes 0-10.

Calorimeter events: 13 cell energies sharing the true energy, cluster
position, and their sum.
"""

import numpy as np
import pandas as pd


def make_muon_events(n: int = 1000, seed: int = 42) -> pd.DataFrame:
    """Table with columns Eta, dPhi12, dEta12, clct1, clct2, GenPt."""
    rng = np.random.default_rng(seed)

    charge = rng.choice([-1.0, 1.0], size=n)
    pt = 1.0 / rng.uniform(1.0 / 200.0, 1.0 / 3.0, size=n)  # flat in 1/pT
    eta = rng.uniform(1.2, 2.4, size=n) * rng.choice([-1.0, 1.0], size=n)

    dphi12 = charge * 0.4 / pt * (1.0 + 0.1 * rng.normal(size=n))
    deta12 = 0.02 * rng.normal(size=n)
    clct1 = rng.integers(0, 11, size=n).astype(np.float32)
    clct2 = rng.integers(0, 11, size=n).astype(np.float32)

    return pd.DataFrame({
        'Eta': eta.astype(np.float32),
        'dPhi12': dphi12.astype(np.float32),
        'dEta12': deta12.astype(np.float32),
        'clct1': clct1,
        'clct2': clct2,
        'GenPt': (charge * pt).astype(np.float32),
    })


def make_calo_events(n: int = 1000, seed: int = 42) -> pd.DataFrame:
    """Table with columns e0..e12, eta, phi, eta0, phi0, esum, etruth."""
    rng = np.random.default_rng(seed)

    etruth = rng.uniform(5.0, 100.0, size=n)
    shares = rng.dirichlet(np.full(13, 2.0), size=n)
    response = 0.9 + 0.05 * rng.normal(size=n)
    cells = shares * (etruth * response)[:, np.newaxis]
    cells += np.abs(0.1 * rng.normal(size=cells.shape))

    df = pd.DataFrame(cells, columns=[f'e{i}' for i in range(13)])
    df['eta'] = rng.uniform(-2.5, 2.5, size=n)
    df['phi'] = rng.uniform(-np.pi, np.pi, size=n)
    df['eta0'] = df['eta'] + 0.01 * rng.normal(size=n)
    df['phi0'] = df['phi'] + 0.01 * rng.normal(size=n)
    df['esum'] = cells.sum(axis=1)
    df['etruth'] = etruth
    return df
