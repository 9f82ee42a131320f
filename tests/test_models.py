"""
Unit tests for the KNN classifier and the fitted scaler+KNN pipeline.
"""

import numpy as np
import pytest
from sklearn.base import clone
from sklearn.exceptions import NotFittedError

from subscribe_knn.errors import ConfigError, EmptyInputError, SchemaMismatchError, UnfittedModelError
from subscribe_knn.models import KNNClassifier, build_knn, fit_knn, predict_players


FEATURES = ["age", "played_hours"]


def test_k1_returns_label_of_identical_stored_vector():
    X = np.array([[0.0, 0.0], [1.0, 5.0], [3.0, 2.0], [4.0, 4.0]])
    y = np.array([True, False, True, False])
    knn = KNNClassifier(n_neighbors=1).fit(X, y)

    np.testing.assert_array_equal(knn.predict(X), y)


def test_k1_pipeline_on_training_rows(twelve_players):
    model = fit_knn(twelve_players, FEATURES, n_neighbors=1)
    pred = predict_players(model, twelve_players, FEATURES)
    np.testing.assert_array_equal(pred, twelve_players["subscribe"].to_numpy())


def test_distance_ties_keep_training_order():
    query = np.array([[1.0]])

    knn = KNNClassifier(n_neighbors=1).fit(np.array([[0.0], [2.0]]), np.array([True, False]))
    assert knn.predict(query)[0] == True  # noqa: E712

    knn = KNNClassifier(n_neighbors=1).fit(np.array([[2.0], [0.0]]), np.array([True, False]))
    assert knn.predict(query)[0] == True  # noqa: E712

    knn = KNNClassifier(n_neighbors=1).fit(np.array([[0.0], [2.0]]), np.array([False, True]))
    assert knn.predict(query)[0] == False  # noqa: E712


def test_vote_ties_go_to_nearest_label_first_seen():
    X = np.array([[3.0], [1.0], [2.0]])
    y = np.array(["c", "b", "a"])
    knn = KNNClassifier(n_neighbors=3).fit(X, y)

    # one vote each; "b" sits nearest to 0
    assert knn.predict(np.array([[0.0]]))[0] == "b"
    # one vote each; "c" sits nearest to 4
    assert knn.predict(np.array([[4.0]]))[0] == "c"


def test_majority_vote():
    X = np.array([[0.0], [0.1], [0.2], [5.0], [5.1]])
    y = np.array([False, False, False, True, True])
    knn = KNNClassifier(n_neighbors=3).fit(X, y)

    np.testing.assert_array_equal(knn.predict(np.array([[0.05], [4.9]])), [False, True])


def test_kneighbors_ordered_by_distance():
    X = np.array([[0.0], [10.0], [3.0], [1.0]])
    knn = KNNClassifier(n_neighbors=3).fit(X, np.array([0, 1, 0, 1]))
    dist, idx = knn.kneighbors(np.array([[0.0]]))

    np.testing.assert_array_equal(idx[0], [0, 3, 2])
    np.testing.assert_allclose(dist[0], [0.0, 1.0, 3.0])


def test_distance_weights_let_exact_match_win():
    X = np.array([[0.0], [1.0], [1.1]])
    y = np.array([True, False, False])
    query = np.array([[0.0]])

    assert KNNClassifier(n_neighbors=3).fit(X, y).predict(query)[0] == False  # noqa: E712
    assert KNNClassifier(n_neighbors=3, weights="distance").fit(X, y).predict(query)[0] == True  # noqa: E712


def test_predict_proba_rows_sum_to_one():
    X = np.array([[0.0], [0.1], [0.2], [5.0], [5.1]])
    y = np.array([False, False, True, True, True])
    proba = KNNClassifier(n_neighbors=3).fit(X, y).predict_proba(np.array([[0.0], [5.0]]))

    np.testing.assert_allclose(proba.sum(axis=1), 1.0)
    np.testing.assert_allclose(proba[0], [2 / 3, 1 / 3])


@pytest.mark.parametrize("k", [0, 2, -1, 1.0])
def test_invalid_k_rejected(k):
    with pytest.raises(ConfigError):
        KNNClassifier(n_neighbors=k).fit(np.array([[0.0], [1.0], [2.0]]), np.array([0, 1, 0]))


def test_k_larger_than_training_set_rejected():
    with pytest.raises(ConfigError):
        KNNClassifier(n_neighbors=5).fit(np.array([[0.0], [1.0], [2.0]]), np.array([0, 1, 0]))


def test_predict_before_fit_raises():
    with pytest.raises(UnfittedModelError):
        KNNClassifier(n_neighbors=3).predict(np.array([[0.0]]))
    with pytest.raises(NotFittedError):
        KNNClassifier(n_neighbors=3).predict(np.array([[0.0]]))


def test_predict_players_unfitted_pipeline_raises(twelve_players):
    with pytest.raises(UnfittedModelError):
        predict_players(build_knn(FEATURES, n_neighbors=3), twelve_players, FEATURES)


def test_feature_count_mismatch_raises():
    knn = KNNClassifier(n_neighbors=1).fit(np.array([[0.0, 1.0], [1.0, 0.0]]), np.array([0, 1]))
    with pytest.raises(SchemaMismatchError):
        knn.predict(np.array([[0.0]]))


def test_predict_players_missing_feature_raises(twelve_players):
    model = fit_knn(twelve_players, FEATURES, n_neighbors=3)
    with pytest.raises(SchemaMismatchError):
        predict_players(model, twelve_players.drop(columns=["played_hours"]), FEATURES)


def test_pipeline_scaler_checks_columns_too(twelve_players):
    model = fit_knn(twelve_players, FEATURES, n_neighbors=3)
    with pytest.raises(SchemaMismatchError):
        model.predict(twelve_players[["age"]])


def test_fit_knn_with_categorical_features(forty_players):
    features = ["age", "played_hours", "gender", "experience"]
    model = fit_knn(forty_players, features, n_neighbors=3)

    assert model.named_steps["knn"].n_features_in_ == 2 + 2 + 5
    pred = predict_players(model, forty_players, features)
    assert pred.dtype == bool
    assert len(pred) == len(forty_players)


def test_estimator_is_cloneable():
    knn = KNNClassifier(n_neighbors=7, weights="distance")
    assert clone(knn).get_params() == {"n_neighbors": 7, "weights": "distance"}


def test_predict_players_empty_table_raises(twelve_players):
    model = fit_knn(twelve_players, ["age", "played_hours"], n_neighbors=3)
    with pytest.raises(EmptyInputError):
        predict_players(model, twelve_players.iloc[0:0], ["age", "played_hours"])
