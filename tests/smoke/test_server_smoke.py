from fastapi.testclient import TestClient

from statml.serve.app import app

client = TestClient(app)


def test_health_and_presets():
    assert client.get("/health").json() == {"status": "ok"}
    names = [p["name"] for p in client.get("/presets").json()]
    assert "Small & Noisy" in names


def test_generate_train_bootstrap_flow():
    ds = client.post("/datasets", json={"n": 120, "seed": 3}).json()
    assert len(ds["points"]) == 120

    model = client.post("/train", json={"points": ds["points"], "model": {"epochs": 50}}).json()
    assert len(model["weights"]) == 3 and len(model["mean_x"]) == 2

    boot = client.post(
        "/bootstrap",
        json={
            "points": ds["points"],
            "weights": model["weights"],
            "mean_x": model["mean_x"],
            "std_x": model["std_x"],
            "num_samples": 100,
        },
    ).json()
    lo, hi = boot["confidence_interval"]
    assert lo <= boot["mean"] <= hi
    assert sum(boot["histogram"]["counts"]) == 100

    pred = client.post(
        "/predict",
        json={"xs": [-2.0, 2.0], "ys": [-2.0, 2.0], "weights": model["weights"],
              "mean_x": model["mean_x"], "std_x": model["std_x"]},
    ).json()
    p_lo, p_hi = pred["probabilities"]
    assert p_lo < 0.5 < p_hi


def test_repeat_training_endpoint():
    ds = client.post("/datasets", json={"n": 80, "seed": 1}).json()
    out = client.post("/repeat-training", json={"points": ds["points"], "num_runs": 3, "model": {"epochs": 20}}).json()
    assert len(out["runs"]) == 3 and len(out["weight_std"]) == 3


def test_invalid_requests_rejected():
    assert client.post("/datasets", json={"n": 0}).status_code == 422
    assert client.post("/train", json={"points": []}).status_code == 422
    r = client.post("/predict", json={"xs": [1.0], "ys": [1.0, 2.0], "weights": [0, 1, 1],
                                      "mean_x": [0, 0], "std_x": [1, 1]})
    assert r.status_code == 422


def test_predict_rejects_degenerate_scaling():
    for std in ([0, 0], [1, -2]):
        r = client.post("/predict", json={"xs": [1.0], "ys": [-1.0], "weights": [0, 1, 1],
                                          "mean_x": [0, 0], "std_x": std})
        assert r.status_code == 422
