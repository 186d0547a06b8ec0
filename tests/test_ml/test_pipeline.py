"""Tests for ML pipeline."""

import numpy as np
import pytest

from src.ml.data import Dataset
from src.ml.schema import Schema, numeric, text


@pytest.fixture
def trips():
    rng = np.random.RandomState(4)
    vendors = rng.choice(["VTS", "CMT"], 80).tolist()
    distance = rng.uniform(0.5, 10, 80)
    fare = 2.5 + 2.0 * distance + np.where(np.array(vendors) == "VTS", 1.0, 0.0)
    return Dataset(
        Schema.of(text("VendorId"), numeric("TripDistance"), numeric("FareAmount")),
        {"VendorId": vendors, "TripDistance": distance, "FareAmount": fare},
    )


def _fare_pipeline():
    from src.ml.pipeline import Pipeline
    from src.ml.trainers import GradientBoostingConfig, create_trainer
    from src.ml.transforms import Concatenate, CopyColumns, OneHotEncoding

    return Pipeline(
        stages=[
            CopyColumns("Label", "FareAmount"),
            OneHotEncoding("VendorIdEncoded", "VendorId"),
            Concatenate("Features", "VendorIdEncoded", "TripDistance"),
        ],
        trainer=create_trainer(GradientBoostingConfig(n_estimators=20)),
    )


class TestPipeline:
    def test_validate_returns_output_schema(self, trips):
        schema = _fare_pipeline().validate(trips.schema)
        assert "Features" in schema
        assert "Score" in schema

    def test_validate_catches_misspelled_column(self, trips):
        from src.ml.errors import SchemaMismatchError
        from src.ml.pipeline import Pipeline
        from src.ml.transforms import OneHotEncoding

        pipeline = Pipeline(stages=[OneHotEncoding("VendorIdEncoded", "VendorID")])
        with pytest.raises(SchemaMismatchError) as exc:
            pipeline.validate(trips.schema)
        assert exc.value.column == "VendorID"
        assert "OneHotEncoding" in exc.value.stage

    def test_fit_produces_model(self, trips):
        from src.ml.trainers import TaskKind

        model = _fare_pipeline().fit(trips, seed=0)
        assert model.task == TaskKind.REGRESSION
        assert model.input_schema == trips.schema
        assert len(model.stages) == 3

    def test_fit_reports_progress(self, trips):
        updates = []
        _fare_pipeline().fit(trips, seed=0, progress_callback=lambda p, m: updates.append(p))
        assert updates[-1] == 1.0
        assert updates == sorted(updates)

    def test_fit_without_trainer_fails(self, trips):
        from src.ml.pipeline import Pipeline

        with pytest.raises(ValueError):
            Pipeline().fit(trips)

    def test_append_routes_trainer_and_stages(self):
        from src.ml.pipeline import Pipeline
        from src.ml.trainers import KMeansConfig, create_trainer
        from src.ml.transforms import Concatenate, MapKeyToValue

        pipeline = (
            Pipeline()
            .append(Concatenate("Features", "a"))
            .append(create_trainer(KMeansConfig()))
            .append(MapKeyToValue("PredictedLabel", "PredictedLabel"))
        )
        assert len(pipeline.stages) == 1
        assert pipeline.trainer is not None
        assert len(pipeline.output_stages) == 1
        assert "KMeansTrainer" in repr(pipeline)

    def test_output_stages_map_predicted_key(self):
        from src.ml.pipeline import Pipeline
        from src.ml.schema import vector
        from src.ml.trainers import MaximumEntropyConfig, create_trainer
        from src.ml.transforms import MapKeyToValue, MapValueToKey

        rng = np.random.RandomState(0)
        X = np.vstack([rng.normal(-3, 0.3, (10, 2)), rng.normal(3, 0.3, (10, 2))])
        ds = Dataset(
            Schema.of(vector("Features", 2), text("Area")),
            {"Features": X, "Area": ["left"] * 10 + ["right"] * 10},
        )
        pipeline = Pipeline(
            stages=[MapValueToKey("Label", "Area")],
            trainer=create_trainer(MaximumEntropyConfig()),
            output_stages=[MapKeyToValue("PredictedLabel", "PredictedLabel")],
        )
        model = pipeline.fit(ds, seed=0)
        out = model.transform(ds)
        assert list(out.column("PredictedLabel")) == ["left"] * 10 + ["right"] * 10
        assert model.predict({"Features": [3.0, 3.0]}).predicted_label == "right"


class TestModel:
    def test_predict_single_row(self, trips):
        from src.ml.model import RegressionPrediction

        model = _fare_pipeline().fit(trips, seed=0)
        prediction = model.predict({"VendorId": "VTS", "TripDistance": 5.0})
        assert isinstance(prediction, RegressionPrediction)
        assert 5.0 < prediction.score < 25.0

    def test_unseen_category_does_not_raise(self, trips):
        model = _fare_pipeline().fit(trips, seed=0)
        prediction = model.predict({"VendorId": "NEW", "TripDistance": 5.0})
        assert np.isfinite(prediction.score)

    def test_transform_rejects_wrong_schema(self, trips):
        from src.ml.errors import SchemaMismatchError

        model = _fare_pipeline().fit(trips, seed=0)
        other = Dataset(Schema.of(text("VendorId")), {"VendorId": ["VTS"]})
        with pytest.raises(SchemaMismatchError) as exc:
            model.transform(other)
        assert exc.value.column == "TripDistance"

    def test_predict_many_matches_predict(self, trips):
        model = _fare_pipeline().fit(trips, seed=0)
        batch = model.predict_many(trips.take(range(5)))
        single = [model.predict(row) for row in trips.take(range(5)).rows()]
        assert batch == single

    def test_output_schema(self, trips):
        model = _fare_pipeline().fit(trips, seed=0)
        assert model.output_schema["Features"].width == 3
