"""Shared fixtures: synthetic player frames shaped like the cleaned table."""

import numpy as np
import pandas as pd
import pytest

from subscribe_knn.config import EXPERIENCE_ORDER


def make_players(ages, hours, labels, genders=None, experience=None) -> pd.DataFrame:
    n = len(ages)
    if genders is None:
        genders = ["Male" if i % 2 else "Female" for i in range(n)]
    if experience is None:
        experience = [EXPERIENCE_ORDER[i % len(EXPERIENCE_ORDER)] for i in range(n)]
    return pd.DataFrame({
        "age": np.asarray(ages, dtype=float),
        "gender": pd.Categorical(genders),
        "experience": pd.Categorical(experience, categories=EXPERIENCE_ORDER, ordered=True),
        "played_hours": np.asarray(hours, dtype=float),
        "subscribe": np.asarray(labels, dtype=bool),
    })


@pytest.fixture
def twelve_players():
    """6 subscribers and 6 non-subscribers with distinct ages and hours."""
    ages = [17, 21, 19, 24, 22, 18, 35, 41, 29, 38, 33, 45]
    hours = [12.5, 30.1, 8.2, 20.0, 15.4, 9.9, 0.0, 0.3, 1.2, 0.1, 2.5, 0.7]
    labels = [True] * 6 + [False] * 6
    return make_players(ages, hours, labels)


@pytest.fixture
def forty_players():
    """16 subscribers and 24 non-subscribers; heavy players tend to subscribe."""
    rng = np.random.default_rng(7)
    n_true, n_false = 16, 24
    ages = np.concatenate([rng.normal(20, 3, n_true), rng.normal(30, 6, n_false)]).round(1)
    hours = np.concatenate([rng.exponential(15, n_true), rng.exponential(2, n_false)]).round(2) + 0.01
    labels = [True] * n_true + [False] * n_false
    return make_players(ages, hours, labels)


@pytest.fixture
def raw_players_csv(tmp_path):
    """Raw export with the original header names and one row missing Age."""
    text = (
        "experience,subscribe,hashedEmail,played_hours,name,gender,Age\n"
        "Pro,TRUE,f6daba,30.3,Morgan,Male,9\n"
        "Veteran,TRUE,f3c813,3.8,Christian,Male,17\n"
        "Veteran,FALSE,b674dd,0.0,Blake,Male,17\n"
        "Amateur,TRUE,23fe71,0.7,Flora,Female,21\n"
        "Regular,TRUE,7dc014,0.1,Kylie,Male,\n"
        "Amateur,TRUE,f58aad,0.0,Adrian,Female,17\n"
    )
    path = tmp_path / "players.csv"
    path.write_text(text, encoding="utf-8")
    return path
