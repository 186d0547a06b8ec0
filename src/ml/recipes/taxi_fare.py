"""New York taxi fares predicted with boosted regression trees."""

from pydantic import BaseModel

from ...config import PipelineSettings
from ..pipeline import Pipeline
from ..schema import Schema, numeric, text
from ..trainers import GradientBoostingConfig, TaskKind, create_trainer
from ..transforms import Concatenate, CopyColumns, OneHotEncoding
from . import Recipe


class TaxiTrip(BaseModel):
    VendorId: str
    RateCode: str
    PassengerCount: float
    TripTime: float
    TripDistance: float
    PaymentType: str
    FareAmount: float = 0.0


TAXI_SCHEMA = Schema.of(
    text("VendorId", 0),
    text("RateCode", 1),
    numeric("PassengerCount", 2),
    numeric("TripTime", 3),
    numeric("TripDistance", 4),
    text("PaymentType", 5),
    numeric("FareAmount", 6),
)

# Observed fare for this trip is 15.5
SAMPLE_TRIP = TaxiTrip(
    VendorId="VTS",
    RateCode="1",
    PassengerCount=1,
    TripTime=1140,
    TripDistance=3.75,
    PaymentType="CRD",
)
SAMPLE_ACTUAL_FARE = 15.5


def build_pipeline(settings: PipelineSettings) -> Pipeline:
    return Pipeline(
        stages=[
            CopyColumns("Label", "FareAmount"),
            OneHotEncoding("VendorIdEncoded", "VendorId"),
            OneHotEncoding("RateCodeEncoded", "RateCode"),
            OneHotEncoding("PaymentTypeEncoded", "PaymentType"),
            Concatenate(
                "Features",
                "VendorIdEncoded",
                "RateCodeEncoded",
                "PassengerCount",
                "TripTime",
                "TripDistance",
                "PaymentTypeEncoded",
            ),
        ],
        trainer=create_trainer(GradientBoostingConfig()),
    )


TAXI_FARE = Recipe(
    name="taxi-fare",
    task=TaskKind.REGRESSION,
    description="Taxi fare regression with gradient boosted trees",
    schema=TAXI_SCHEMA,
    row_model=TaxiTrip,
    build_pipeline=build_pipeline,
    train_file="taxi-fare-train.csv",
    test_file="taxi-fare-test.csv",
    has_header=True,
    samples=(SAMPLE_TRIP,),
)
