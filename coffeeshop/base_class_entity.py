from datetime import datetime
from typing import Tuple, Dict, List, Optional

from coffeeshop.constants.substitute_keys import from_db
from coffeeshop.utils import db as utils_db, exceptions
from coffeeshop.utils.data import substitute_keys
from coffeeshop.utils.logger import logger


class EntityBase:
    """
    One record of the single table. Child classes define pk/sk templates,
    the attribute dict and the validators applied before every put.
    """
    pk = None
    sk = None

    required_fields_validation = {}
    optional_fields_validation = {}

    def __init__(self, id_):
        self.id_: str = id_
        self.record_type: str = ''
        self.db_record: Dict = {}

    def _get_pk_sk(self) -> Tuple[str, str]:
        """
        Should be re-implemented in each child class
        :return:
        partkey, sortkey of db item for child
        """
        return self.pk, self.sk

    def _key(self) -> Dict:
        pk, sk = self._get_pk_sk()
        return {'partkey': pk, 'sortkey': sk}

    def _get_db_item(self) -> Dict:
        return utils_db.get_db_item(*self._get_pk_sk())

    def _to_dict(self) -> Dict:
        """
        Should be re-implemented in each child class
        :return:
        dict of item's attributes
        """
        return {
            'id_': self.id_,
        }

    def _init_db_record(self) -> None:
        pk, sk = self._get_pk_sk()
        self.db_record = {
            'partkey': pk,
            'sortkey': sk,
            'record_type': self.record_type,
            **self._to_dict()
        }

    @staticmethod
    def raise_validation_error(key, value=None):
        message = f'Validation error occurred while validating the field={key}'
        logger.error(f"raise_validation_error ::: {message}, {value=}")
        raise exceptions.ValidationException(message)

    def _validate_mandatory_fields(self):
        """
        Every required field must be present and pass its validator
        """
        for key, validator_func in self.required_fields_validation.items():
            if validator_func(self.db_record.get(key)) is False:
                self.raise_validation_error(key, self.db_record.get(key))

    def _validate_optional_fields(self):
        for key, validator_func in self.optional_fields_validation.items():
            value = self.db_record.get(key)
            if value is not None and validator_func(value) is False:
                self.raise_validation_error(key, value)

    def _create_db_record(self, condition_expression=None) -> None:
        """
        Validates and puts the whole record.
        condition_expression makes the put conditional (e.g. no overwrite of an existing order)
        """
        self._init_db_record()
        self._validate_mandatory_fields()
        self._validate_optional_fields()
        utils_db.put_db_record(self.db_record, condition_expression=condition_expression)
        logger.info(f"_create_db_record ::: {self.record_type=} {self.id_=} {self.db_record.get('partkey')=} "
                    f"{self.db_record.get('sortkey')=} successfully created")

    def _update_db_fields(self, fields: Dict, list_appends: Optional[Dict[str, List]] = None,
                          condition_expression=None) -> Dict:
        """
        Writes only the given attributes, the rest of the record stays as stored.
        Fields with a validator are checked before the write.
        """
        validators = {**self.required_fields_validation, **self.optional_fields_validation}
        for key, value in fields.items():
            if key in validators and validators[key](value) is False:
                self.raise_validation_error(key, value)
        attributes = utils_db.update_db_fields(
            key=self._key(),
            fields=fields,
            list_appends=list_appends,
            condition_expression=condition_expression
        )
        logger.info(f"_update_db_fields ::: {self.record_type=} {self.id_=} updated fields={sorted(fields)}")
        return attributes

    def _delete_db_record(self) -> None:
        utils_db.delete_db_record(*self._get_pk_sk())
        logger.info(f"_delete_db_record ::: {self.record_type=} {self.id_=} deleted")

    @staticmethod
    def _now() -> str:
        return datetime.now().isoformat(timespec="seconds")

    def _to_ui(self) -> Dict:
        item = self._to_dict()
        substitute_keys(dict_to_process=item, base_keys=from_db)
        return item

    def to_ui(self) -> Dict:
        return self._to_ui()
