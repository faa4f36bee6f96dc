AVOGADRO = 6.02214076e23
ANGSTROM3_TO_CM3 = 1.0e-24
E_ANGSTROM_TO_DEBYE = 4.80320471


class units:
    factors = {
        ("e_angstrom", "e_angstrom"): 1,
        ("e_angstrom", "debye"): E_ANGSTROM_TO_DEBYE,
        ("debye", "e_angstrom"): 1 / E_ANGSTROM_TO_DEBYE,
        ("debye", "debye"): 1,
    }

    @classmethod
    def _s_unit(cls, unit):
        return unit.lower().replace(" ", "_")

    @classmethod
    def _conversion_factor(cls, f, t):
        if (f, t) in cls.factors:
            return cls.factors[(f, t)]
        raise ValueError(f"No viable conversion from '{f}' to '{t}'")

    @classmethod
    def convert(cls, value, t="e_angstrom", f="e_angstrom"):
        return value * cls._conversion_factor(cls._s_unit(f), cls._s_unit(t))
