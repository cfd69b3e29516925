"""
Switch Sample Data Generator
============================
Generates synthetic single-cycle switch actuation exports for trying out
the analysis without a test bench.

The generated file mimics the bench export:
    Index, Date Time, Force (N), Voltage (V), Linear (mm)

Profile:
- Dwell at rest
- Press stroke: spring preload, tactile peak, snap-through, bottoming out
- Contact closes (voltage drops) shortly after the tactile snap
- Release stroke with force hysteresis; contact re-opens later in travel
- Dwell at rest after release

Scenarios:
- nominal: standard tactile switch
- no_actuation: contact never closes (voltage stays high)
- no_return: actuator stops short of the start position after release

Usage:
    python generate_switch_sample_data.py
    python generate_switch_sample_data.py --scenario no_actuation --seed 7
    python generate_switch_sample_data.py --output sample_data/switch.csv
"""

import argparse
import os
from typing import Dict, Any, Optional

import numpy as np
import pandas as pd


DEFAULT_SWITCH = {
    'total_travel_mm': 2.3,
    'preload_n': 0.4,
    'tactile_peak_n': 3.4,
    'tactile_peak_mm': 1.0,
    'snap_valley_n': 2.2,
    'snap_valley_mm': 1.5,
    'bottom_out_n': 6.0,
    'actuation_mm': 1.35,      # contact closes on press
    'release_mm': 1.05,        # contact opens on release
    'hysteresis_n': 0.9,       # release force deficit
    'v_open': 8.4,
    'v_closed': 2.0,
    'n_rest': 60,
    'n_stroke': 400,
    'sample_period_ms': 5,
}

SCENARIOS = {
    'nominal': {'description': 'Standard tactile switch'},
    'no_actuation': {'description': 'Contact never closes', 'overrides': {'actuation_mm': 99.0}},
    'no_return': {'description': 'Actuator stops 0.2 mm short of rest', 'return_offset_mm': 0.2},
}


def force_curve(travel: np.ndarray, p: Dict[str, Any]) -> np.ndarray:
    """Press-stroke force as a piecewise-linear function of travel."""
    xs = [0.0, p['tactile_peak_mm'], p['snap_valley_mm'], p['total_travel_mm'] * 0.9,
          p['total_travel_mm']]
    ys = [p['preload_n'], p['tactile_peak_n'], p['snap_valley_n'], p['snap_valley_n'] + 0.5,
          p['bottom_out_n']]
    return np.interp(travel, xs, ys)


def generate_switch_csv(
    scenario: str = 'nominal',
    seed: Optional[int] = None,
    switch_params: Optional[Dict[str, Any]] = None,
) -> pd.DataFrame:
    """
    Generate one press/release cycle as a bench-style DataFrame.

    Args:
        scenario: One of the SCENARIOS keys
        seed: Random seed for reproducibility
        switch_params: Override default switch parameters

    Returns:
        DataFrame with the bench export headers
    """
    rng = np.random.default_rng(seed)

    params = dict(DEFAULT_SWITCH)
    if switch_params:
        params.update(switch_params)
    scenario_def = SCENARIOS.get(scenario, SCENARIOS['nominal'])
    params.update(scenario_def.get('overrides', {}))
    return_offset = scenario_def.get('return_offset_mm', 0.0)

    n_rest, n_stroke = params['n_rest'], params['n_stroke']
    tm = params['total_travel_mm']

    press = np.linspace(0.0, tm, n_stroke)
    release = np.linspace(tm, return_offset, n_stroke)[1:]
    travel = np.concatenate([
        np.zeros(n_rest),
        press,
        release,
        np.full(n_rest, return_offset),
    ])

    force = np.concatenate([
        np.full(n_rest, 0.0),
        force_curve(press, params),
        np.maximum(force_curve(release, params) - params['hysteresis_n'] * (release > 0.05), 0.0),
        np.full(n_rest, force_curve(np.array([return_offset]), params)[0] if return_offset else 0.0),
    ])
    force = force + rng.normal(0, 0.02, force.size)
    travel = travel + rng.normal(0, 0.002, travel.size)

    # contact state: closed on press after actuation, on release until it re-opens
    n_pre = n_rest + n_stroke
    closed = np.zeros(travel.size, dtype=bool)
    closed[n_rest:n_pre] = press >= params['actuation_mm']
    press_closed = bool(closed[n_pre - 1])
    closed[n_pre:n_pre + release.size] = press_closed & (release > params['release_mm'])
    voltage = np.where(closed, params['v_closed'], params['v_open'])
    voltage = voltage + rng.normal(0, 0.03, voltage.size)

    start = pd.Timestamp('2024-01-01 09:00:00')
    times = start + pd.to_timedelta(np.arange(travel.size) * params['sample_period_ms'], unit='ms')

    return pd.DataFrame({
        'Index': np.arange(travel.size),
        'Date Time': times.strftime('%Y-%m-%d %H:%M:%S.%f'),
        'Force (N)': np.round(force, 4),
        'Voltage (V)': np.round(voltage, 4),
        'Linear (mm)': np.round(travel, 4),
    })


def write_sample_file(output: str, scenario: str = 'nominal', seed: int = 42) -> str:
    out_dir = os.path.dirname(output)
    if out_dir:
        os.makedirs(out_dir, exist_ok=True)
    generate_switch_csv(scenario=scenario, seed=seed).to_csv(output, index=False)
    return output


def main():
    parser = argparse.ArgumentParser(
        description='Generate a synthetic switch actuation export',
    )
    parser.add_argument(
        '--scenario', type=str, default='nominal', choices=list(SCENARIOS.keys()),
        help='Scenario to generate (default: nominal)',
    )
    parser.add_argument(
        '--output', type=str, default='./sample_data/switch_nominal.csv',
        help='Output CSV path',
    )
    parser.add_argument('--seed', type=int, default=42, help='Random seed (default: 42)')
    args = parser.parse_args()

    path = write_sample_file(args.output, scenario=args.scenario, seed=args.seed)
    print(f"Scenario: {args.scenario} - {SCENARIOS[args.scenario]['description']}")
    print(f"Written:  {path}")


if __name__ == '__main__':
    main()
